"""
Item detail fields - decode `op items get` output and hold the secrets of the
one item the user picked.

IMPORTANT: secret values live in SecretValue buffers only. They are wiped as
soon as the selection is discarded and must never reach a log line.
"""

import json
from dataclasses import dataclass
from enum import IntEnum

from op_cli import DetailDecodeFailure


class FieldSlot(IntEnum):
    """Field result ids. The numbering is what the host sends back on select."""

    USERNAME = 0
    PASSWORD = 1
    OTP = 2
    CARD_NUMBER = 3
    CVV = 4
    EXPIRY = 5

    @property
    def title(self) -> str:
        return SLOT_TITLES[self]


SLOT_TITLES = {
    FieldSlot.USERNAME: "Username",
    FieldSlot.PASSWORD: "Password",
    FieldSlot.OTP: "One-time password",
    FieldSlot.CARD_NUMBER: "Card number",
    FieldSlot.CVV: "CVV",
    FieldSlot.EXPIRY: "Expiry",
}

# Field ids in the detail record, per value slot
FIELD_KEYS = {
    FieldSlot.USERNAME: "username",
    FieldSlot.PASSWORD: "password",
    FieldSlot.CARD_NUMBER: "ccnum",
    FieldSlot.CVV: "cvv",
    FieldSlot.EXPIRY: "expiry",
}

OTP_FIELD_TYPE = "OTP"


@dataclass(frozen=True)
class DetailField:
    field_id: str
    field_type: str
    value: str | None = None


@dataclass(frozen=True)
class DetailRecord:
    fields: tuple[DetailField, ...]

    @classmethod
    def from_json(cls, text: str) -> "DetailRecord":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise DetailDecodeFailure(f"Item detail is not JSON: {e.msg}") from e
        if not isinstance(data, dict) or not isinstance(data.get("fields"), list):
            raise DetailDecodeFailure("Item detail has no 'fields' list")

        fields = []
        for entry in data["fields"]:
            if not isinstance(entry, dict):
                raise DetailDecodeFailure("Item field is not an object")
            field_id = entry.get("id")
            field_type = entry.get("type")
            value = entry.get("value")
            if not isinstance(field_id, str) or not isinstance(field_type, str):
                raise DetailDecodeFailure("Item field without string 'id' and 'type'")
            if value is not None and not isinstance(value, str):
                raise DetailDecodeFailure(f"Item field '{field_id}' has a non-string value")
            fields.append(DetailField(field_id, field_type, value))
        return cls(tuple(fields))


def extract(record: DetailRecord) -> tuple[dict[FieldSlot, str], bool]:
    """Pull the known fields out of a detail record.

    Returns (values, has_otp). A slot takes the first field with its id and a
    non-empty value; missing slots are simply left out. The OTP value itself
    is never read here, it is minted fresh on use.
    """
    values: dict[FieldSlot, str] = {}
    for slot, key in FIELD_KEYS.items():
        for f in record.fields:
            if f.field_id == key and f.value:
                values[slot] = f.value
                break
    has_otp = any(f.field_type == OTP_FIELD_TYPE for f in record.fields)
    return values, has_otp


class SecretValue:
    """A secret in a mutable buffer that can be zeroed on demand.

    Copying and pickling are refused so the value cannot be duplicated by
    accident.
    """

    __slots__ = ("_buffer",)

    def __init__(self, value: str):
        self._buffer = bytearray(value.encode("utf-8"))

    def reveal(self) -> bytes:
        return bytes(self._buffer)

    def wipe(self) -> None:
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._buffer.clear()

    @property
    def wiped(self) -> bool:
        return not self._buffer

    def __repr__(self) -> str:
        return "SecretValue(<wiped>)" if self.wiped else "SecretValue(****)"

    def __copy__(self):
        raise TypeError("SecretValue cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("SecretValue cannot be copied")

    def __reduce__(self):
        raise TypeError("SecretValue cannot be pickled")


class ActiveSelection:
    """The item the user picked, with its secrets, for one flow."""

    __slots__ = ("external_id", "has_otp", "_secrets")

    def __init__(
        self,
        external_id: str,
        values: dict[FieldSlot, str],
        has_otp: bool = False,
    ):
        self.external_id = external_id
        self.has_otp = has_otp
        self._secrets = {
            slot: SecretValue(values[slot]) for slot in FIELD_KEYS if values.get(slot)
        }

    @classmethod
    def from_record(cls, external_id: str, record: DetailRecord) -> "ActiveSelection":
        values, has_otp = extract(record)
        return cls(external_id, values, has_otp)

    def offered(self) -> list[FieldSlot]:
        """Slots to show, in FieldSlot order"""
        return [
            slot
            for slot in FieldSlot
            if (slot == FieldSlot.OTP and self.has_otp) or slot in self._secrets
        ]

    def secret(self, slot: FieldSlot) -> bytes:
        """Stored value of a value slot.

        Raises LookupError for a slot that was never offered; the host only
        sends back ids it was given, so this is a bug, not user input.
        """
        secret = self._secrets.get(slot)
        if secret is None or secret.wiped:
            raise LookupError(f"{slot.title} was not offered for this item")
        return secret.reveal()

    def discard(self) -> None:
        for secret in self._secrets.values():
            secret.wipe()
        self._secrets.clear()
        self.has_otp = False

    def __repr__(self) -> str:
        slots = ", ".join(slot.name for slot in self.offered())
        return f"ActiveSelection({self.external_id!r}, [{slots}])"
