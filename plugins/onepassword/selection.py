"""
Selection flow - search items, pick one, then pick one of its fields.

The session is in exactly one of two states:

    Searching                     ranking the index against each query
    FieldPicking(selection, q)    showing the fields of one item, for as long
                                  as the query is still exactly q

Any query other than q drops the selection (wiping its secrets) and goes
back to Searching.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from catalog import IndexedItem, load_index
from config import Config
from fields import ActiveSelection, DetailRecord, FieldSlot
from op_cli import OpError, Runner, find_op, item_get_args, item_otp_args, run_op
from ranker import rank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    """One line in the result list; handle is what comes back on select."""

    title: str
    handle: int


class OutcomeKind(Enum):
    REFRESH = "refresh"
    COPY = "copy"
    CLOSE = "close"


@dataclass(frozen=True, repr=False)
class Outcome:
    kind: OutcomeKind
    payload: bytes | None = None

    def __repr__(self) -> str:
        # never show the payload
        return f"Outcome({self.kind.name})"


REFRESH = Outcome(OutcomeKind.REFRESH)
CLOSE = Outcome(OutcomeKind.CLOSE)


def copy_payload(payload: bytes) -> Outcome:
    return Outcome(OutcomeKind.COPY, payload)


class Searching:
    def __repr__(self) -> str:
        return "Searching()"


@dataclass(repr=False)
class FieldPicking:
    selection: ActiveSelection
    query: str | None

    def __repr__(self) -> str:
        return f"FieldPicking({self.selection!r}, query={self.query!r})"


class Session:
    def __init__(
        self,
        index: tuple[IndexedItem, ...],
        config: Config,
        op_path: str | None = None,
        runner: Runner = run_op,
    ):
        self.index = index
        self.config = config
        self.op_path = op_path or config.op_path
        self._runner = runner
        self._state: Searching | FieldPicking = Searching()
        self._last_query: str | None = None

    @classmethod
    def load(cls, config: Config, runner: Runner = run_op) -> "Session":
        """Load the vault listing once. OpError propagates."""
        op_path = find_op(config.op_path)
        index = load_index(op_path, runner=runner)
        return cls(index, config, op_path=op_path, runner=runner)

    @property
    def state(self) -> Searching | FieldPicking:
        return self._state

    @property
    def is_picking_fields(self) -> bool:
        return isinstance(self._state, FieldPicking)

    @property
    def last_query(self) -> str | None:
        return self._last_query

    def query(self, text: str) -> list[Entry]:
        state = self._state
        if isinstance(state, FieldPicking):
            if text == state.query:
                return field_entries(state.selection)
            self._reset()
        return self._search(text)

    def refresh(self) -> list[Entry]:
        """Entries for the current state, e.g. right after a REFRESH outcome"""
        state = self._state
        if isinstance(state, FieldPicking):
            return field_entries(state.selection)
        return self.query(self._last_query or "")

    def select(self, handle: int) -> Outcome:
        state = self._state
        if isinstance(state, FieldPicking):
            return self._pick_field(state.selection, handle)
        return self._pick_item(handle)

    def close(self) -> None:
        self._reset()

    def _reset(self) -> None:
        state = self._state
        if isinstance(state, FieldPicking):
            state.selection.discard()
        self._state = Searching()

    def _search(self, text: str) -> list[Entry]:
        self._last_query = text
        prefix = self.config.prefix
        if prefix and not text.startswith(prefix):
            return []
        candidates = rank(text[len(prefix) :], self.index, self.config.max_entries)
        return [Entry(c.item.title, c.handle) for c in candidates]

    def _pick_item(self, handle: int) -> Outcome:
        if not 0 <= handle < len(self.index):
            logger.warning("Select for unknown item handle %d", handle)
            return CLOSE
        item = self.index[handle].item

        try:
            output = self._runner(self.op_path, item_get_args(item.external_id))
            record = DetailRecord.from_json(output)
        except OpError as e:
            logger.error("Could not fetch item %s: %s", item.external_id, e)
            return CLOSE

        selection = ActiveSelection.from_record(item.external_id, record)
        self._state = FieldPicking(selection, self._last_query)
        logger.debug("Showing fields of %s", item.external_id)
        return REFRESH

    def _pick_field(self, selection: ActiveSelection, handle: int) -> Outcome:
        try:
            slot = FieldSlot(handle)
        except ValueError:
            self._reset()
            return CLOSE

        if slot != FieldSlot.OTP:
            return copy_payload(selection.secret(slot))

        if not selection.has_otp:
            raise LookupError(f"{slot.title} was not offered for this item")
        try:
            otp = self._runner(self.op_path, item_otp_args(selection.external_id))
        except OpError as e:
            logger.error("Could not mint OTP for %s: %s", selection.external_id, e)
            self._reset()
            return CLOSE
        return copy_payload(otp.strip().encode("utf-8"))


def field_entries(selection: ActiveSelection) -> list[Entry]:
    return [Entry(slot.title, int(slot)) for slot in selection.offered()]
