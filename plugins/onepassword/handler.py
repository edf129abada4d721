#!/usr/bin/env python3
"""
1Password plugin for hamr - search the vault and copy one field of an item.

Requires:
- op (1Password CLI) installed, signed in and unlocked

Flow:
- type to fuzzy-search item titles and website domains
- pick an item to list its fields (username, password, one-time password,
  card number, CVV, expiry)
- pick a field to copy it and close the launcher

The vault listing is loaded once when the plugin starts. If that fails the
plugin stays up but never returns results. Secrets are not shown or logged.
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
from sdk.hamr_sdk import HamrPlugin, is_debug_enabled

from config import load_config
from fields import FieldSlot
from op_cli import OpError
from selection import Entry, OutcomeKind, Session

logger = logging.getLogger(__name__)

PLACEHOLDER = "Search 1Password..."

SLOT_ICONS = {
    FieldSlot.USERNAME: "person",
    FieldSlot.PASSWORD: "key",
    FieldSlot.OTP: "schedule",
    FieldSlot.CARD_NUMBER: "credit_card",
    FieldSlot.CVV: "pin",
    FieldSlot.EXPIRY: "event",
}

# None until main() loads the vault, and for good if that load fails
SESSION: Session | None = None

plugin = HamrPlugin(
    id="onepassword",
    name="1Password",
    description="Search and copy credentials from 1Password",
    icon="password",
)


def start_session() -> Session | None:
    config = load_config()
    try:
        session = Session.load(config)
    except OpError as e:
        logger.error("Could not load 1Password items: %s", e)
        return None
    logger.debug("Loaded %d items", len(session.index))
    return session


def entry_to_result(entry: Entry, session: Session) -> dict:
    result = {"id": str(entry.handle), "name": entry.title}
    if session.is_picking_fields:
        result["icon"] = SLOT_ICONS[FieldSlot(entry.handle)]
        result["verb"] = "Copy"
    else:
        result["icon"] = "password"
        result["verb"] = "Open"
    return result


def results_for(entries: list[Entry], session: Session) -> dict:
    return HamrPlugin.results(
        [entry_to_result(e, session) for e in entries],
        input_mode="realtime",
        placeholder=PLACEHOLDER,
    )


@plugin.on_initial
def handle_initial(params=None):
    """Handle initial request when plugin is opened."""
    return handle_search("")


@plugin.on_search
def handle_search(query: str, context: str | None = None):
    """Handle search request."""
    session = SESSION
    if session is None:
        return HamrPlugin.results([], input_mode="realtime", placeholder=PLACEHOLDER)
    return results_for(session.query(query), session)


@plugin.on_action
def handle_action(item_id: str, action: str | None = None, context: str | None = None):
    """Handle action request."""
    session = SESSION
    if session is None:
        return HamrPlugin.close()
    try:
        handle = int(item_id)
    except ValueError:
        session.close()
        return HamrPlugin.close()

    outcome = session.select(handle)
    if outcome.kind == OutcomeKind.REFRESH:
        return results_for(session.refresh(), session)
    if outcome.kind == OutcomeKind.COPY and outcome.payload is not None:
        return HamrPlugin.copy_and_close(outcome.payload.decode("utf-8"))
    return HamrPlugin.close()


def main():
    global SESSION

    logging.basicConfig(
        level=logging.DEBUG if is_debug_enabled() else logging.WARNING,
        stream=sys.stderr,
        format="[onepassword] %(levelname)s %(name)s: %(message)s",
    )
    SESSION = start_session()
    try:
        plugin.run()
    finally:
        if SESSION is not None:
            SESSION.close()


if __name__ == "__main__":
    main()
