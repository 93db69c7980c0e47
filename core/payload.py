# =============================================================================
# core/payload.py - Enrollment payload encoding
# =============================================================================

import json
from typing import Any, Dict, List, Mapping

from core.models import Machine

# Machine attribute -> wire key, in wire order
WIRE_FIELDS = (
    ('end_user_name', 'EndUserName'),
    ('asset_number', 'AssetNumber'),
    ('location_group_id', 'LocationGroupId'),
    ('message_type', 'MessageType'),
    ('serial_number', 'SerialNumber'),
    ('platform_id', 'PlatformId'),
    ('friendly_name', 'FriendlyName'),
    ('ownership', 'Ownership'),
    ('employee_type', 'employeetypemacssc'),
    ('vpn_select', 'vpnguestmacssc'),
    ('tableau_desktop', 'tableauDesktopmacssc'),
    ('tableau_prep', 'tableauPrepmacssc'),
    ('filemaker', 'filemakermacssc'),
    ('mindmanager', 'mindmanagermacssc'),
    ('lina_exception', 'linaexceptionssc'),
    ('acrobat_reader_exception', 'acrobatreaderexceptionssc'),
    ('devicetype', 'devicetypemacssc'),
    ('sciper', 'SCIPER'),
)

# Flags travel as 0/1, not JSON booleans
INT_FLAG_FIELDS = frozenset({
    'tableau_desktop',
    'tableau_prep',
    'mindmanager',
    'lina_exception',
    'acrobat_reader_exception',
})

INT_FIELDS = frozenset({'message_type', 'platform_id'})


class PayloadError(ValueError):
    """Raised when a payload cannot be decoded into a machine"""


def to_payload(machine: Machine) -> Dict[str, Any]:
    """Wire representation of a machine; the in-memory id is left out"""
    payload = {}
    for attribute, wire_key in WIRE_FIELDS:
        value = getattr(machine, attribute)
        if attribute in INT_FLAG_FIELDS:
            value = 1 if value else 0
        payload[wire_key] = value
    return payload


def encode_machine(machine: Machine) -> bytes:
    """Pretty-printed UTF-8 JSON body uploaded for a machine"""
    return json.dumps(to_payload(machine), indent=2, ensure_ascii=False).encode('utf-8')


def from_payload(payload: Mapping[str, Any]) -> Machine:
    """Rebuild a machine from its wire representation"""
    if not isinstance(payload, Mapping):
        raise PayloadError("Payload must be a JSON object")

    values = {}
    missing = []
    for attribute, wire_key in WIRE_FIELDS:
        if wire_key not in payload:
            missing.append(wire_key)
            continue
        value = payload[wire_key]
        try:
            if attribute in INT_FLAG_FIELDS:
                value = int(value) != 0
            elif attribute in INT_FIELDS:
                value = int(value)
            else:
                value = str(value)
        except (TypeError, ValueError) as e:
            raise PayloadError(f"Invalid value for {wire_key}: {value!r}") from e
        values[attribute] = value

    if missing:
        raise PayloadError(f"Missing payload keys: {', '.join(missing)}")
    return Machine(**values)


def dump_machines(machines: List[Machine]) -> str:
    """JSON array of payloads, used to persist the pending list"""
    return json.dumps([to_payload(machine) for machine in machines], indent=2, ensure_ascii=False)


def load_machines(content: str) -> List[Machine]:
    try:
        payloads = json.loads(content)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Machine list is not valid JSON: {e}") from e
    if not isinstance(payloads, list):
        raise PayloadError("Machine list must be a JSON array")
    return [from_payload(payload) for payload in payloads]
