"""Composite Shapes - One flatten/recompose/display rule per composite kind"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..domain.enums import CompositeKind, InputKind


def as_text(value: Any) -> str:
    """Render a primitive sub-value the way the edit buffer holds it"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _join(parts: Mapping[str, str], keys: Tuple[str, ...], separator: str) -> str:
    return separator.join(parts[key] for key in keys if parts.get(key))


def _display_name(parts: Mapping[str, str]) -> str:
    return _join(parts, ("first", "middle", "last"), " ")


def _display_phone(parts: Mapping[str, str]) -> str:
    text = _join(parts, ("region", "number"), " ")
    if parts.get("ext"):
        text = f"{text} ext. {parts['ext']}"
    if parts.get("type"):
        text = f"{text} ({parts['type']})"
    return text.strip()


def _display_address(parts: Mapping[str, str]) -> str:
    return _join(parts, ("street1", "street2", "city", "state", "zip", "country"), ", ")


def _display_payment_card(parts: Mapping[str, str]) -> str:
    number = parts.get("cardNumber", "")
    text = f"•••• {number[-4:]}" if number else ""
    if parts.get("cardExpirationDate"):
        text = f"{text} exp {parts['cardExpirationDate']}"
    return text.strip()


def _display_bank_account(parts: Mapping[str, str]) -> str:
    account_type = parts.get("otherType") or parts.get("accountType", "")
    numbers = _join(parts, ("accountNumber", "routingNumber"), " / ")
    return " ".join(part for part in (account_type, numbers) if part)


def _display_key_pair(parts: Mapping[str, str]) -> str:
    if parts.get("publicKey"):
        return parts["publicKey"]
    return "Private key set" if parts.get("privateKey") else ""


def _display_host(parts: Mapping[str, str]) -> str:
    host = parts.get("hostName", "")
    if parts.get("port"):
        return f"{host}:{parts['port']}"
    return host


@dataclass(frozen=True)
class CompositeShape:
    """
    Structure of one composite field type

    sub_fields lists every known sub-field in display order; default_shape is
    used when a schema gives no sample value; primary sub-fields inherit the
    parent entry's required flag.
    """
    kind: CompositeKind
    sub_fields: Tuple[str, ...]
    primary: Tuple[str, ...]
    labels: Dict[str, str]
    display: Callable[[Mapping[str, str]], str]
    default_shape: Tuple[str, ...] = ()
    input_kinds: Dict[str, InputKind] = field(default_factory=dict)
    options: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def descriptor_name(self, sub_field: str) -> str:
        return f"{self.kind.value}_{sub_field}"

    def label_for(self, sub_field: str) -> str:
        return self.labels.get(sub_field, sub_field)

    def input_kind_for(self, sub_field: str) -> InputKind:
        return self.input_kinds.get(sub_field, InputKind.TEXT)

    def shape_from_sample(self, sample: Any) -> Tuple[str, ...]:
        """Known sub-fields present in a sample value, or the default shape"""
        if isinstance(sample, dict) and sample:
            present = tuple(sub for sub in self.sub_fields if sub in sample)
            if present:
                return present
        return self.default_shape or self.sub_fields

    def flatten(self, value: Any) -> Optional[Dict[str, str]]:
        """
        Split a stored composite value into non-empty text parts

        Unknown keys are kept so the caller can surface them. Returns None
        when the value does not look like this composite at all.
        """
        if value is None:
            return {}
        if not isinstance(value, dict):
            return None
        if value and not any(key in self.sub_fields for key in value):
            return None
        parts: Dict[str, str] = {}
        for key, raw in value.items():
            if isinstance(raw, (dict, list)):
                continue
            text = as_text(raw)
            if text:
                parts[key] = text
        return parts

    def recompose(self, parts: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Rebuild the structured value from edited sub-fields"""
        value = {
            sub: parts[sub]
            for sub in self.sub_fields
            if sub in parts and parts[sub] not in (None, "")
        }
        return value or None

    def display_value(self, value: Any) -> Optional[str]:
        parts = self.flatten(value)
        if parts is None:
            return None
        return self.display(parts)


COMPOSITE_SHAPES: Dict[CompositeKind, CompositeShape] = {
    CompositeKind.NAME: CompositeShape(
        kind=CompositeKind.NAME,
        sub_fields=("first", "middle", "last"),
        primary=("first", "last"),
        labels={"first": "First Name", "middle": "Middle Name", "last": "Last Name"},
        display=_display_name,
    ),
    CompositeKind.PHONE: CompositeShape(
        kind=CompositeKind.PHONE,
        sub_fields=("region", "number", "ext", "type"),
        primary=("number",),
        labels={"region": "Region", "number": "Phone Number", "ext": "Extension", "type": "Phone Type"},
        display=_display_phone,
        input_kinds={"number": InputKind.PHONE, "type": InputKind.SELECT},
        options={"type": ("Mobile", "Work", "Home")},
    ),
    CompositeKind.ADDRESS: CompositeShape(
        kind=CompositeKind.ADDRESS,
        sub_fields=("street1", "street2", "city", "state", "zip", "country"),
        primary=("street1",),
        labels={
            "street1": "Street Address",
            "street2": "Street Address 2",
            "city": "City",
            "state": "State",
            "zip": "ZIP Code",
            "country": "Country",
        },
        display=_display_address,
    ),
    CompositeKind.PAYMENT_CARD: CompositeShape(
        kind=CompositeKind.PAYMENT_CARD,
        sub_fields=("cardNumber", "cardExpirationDate", "cardSecurityCode"),
        primary=("cardNumber",),
        labels={
            "cardNumber": "Card Number",
            "cardExpirationDate": "Expiration Date",
            "cardSecurityCode": "Security Code",
        },
        display=_display_payment_card,
        input_kinds={"cardNumber": InputKind.MASKED, "cardSecurityCode": InputKind.MASKED},
    ),
    CompositeKind.BANK_ACCOUNT: CompositeShape(
        kind=CompositeKind.BANK_ACCOUNT,
        sub_fields=("accountType", "otherType", "accountNumber", "routingNumber"),
        primary=("accountNumber", "routingNumber"),
        labels={
            "accountType": "Account Type",
            "otherType": "Other Type",
            "accountNumber": "Account Number",
            "routingNumber": "Routing Number",
        },
        display=_display_bank_account,
        input_kinds={"accountType": InputKind.SELECT},
        options={"accountType": ("Checking", "Savings", "Other")},
    ),
    CompositeKind.KEY_PAIR: CompositeShape(
        kind=CompositeKind.KEY_PAIR,
        sub_fields=("privateKey", "publicKey"),
        primary=("privateKey",),
        labels={"privateKey": "Private Key", "publicKey": "Public Key"},
        display=_display_key_pair,
        input_kinds={"privateKey": InputKind.MASKED},
    ),
    CompositeKind.HOST: CompositeShape(
        kind=CompositeKind.HOST,
        sub_fields=("hostName", "port"),
        primary=("hostName",),
        labels={"hostName": "Host", "port": "Port"},
        display=_display_host,
    ),
}

_missing_kinds = set(CompositeKind) - set(COMPOSITE_SHAPES)
if _missing_kinds:
    raise RuntimeError(f"Composite kinds without a shape: {sorted(kind.value for kind in _missing_kinds)}")


def composite_kind_for(field_type: Optional[str]) -> Optional[CompositeKind]:
    """Composite kind for a stored field type name, if it is one"""
    if not field_type:
        return None
    try:
        return CompositeKind(field_type)
    except ValueError:
        return None


def get_shape(kind: CompositeKind) -> CompositeShape:
    return COMPOSITE_SHAPES[kind]


def infer_kind_from_sample(sample: Any) -> Optional[CompositeKind]:
    """Composite kind whose sub-fields best cover a sample value's keys"""
    if not isinstance(sample, dict) or not sample:
        return None
    best: Optional[CompositeKind] = None
    best_overlap = 0
    for kind, shape in COMPOSITE_SHAPES.items():
        overlap = sum(1 for key in sample if key in shape.sub_fields)
        if overlap > best_overlap:
            best, best_overlap = kind, overlap
    return best
