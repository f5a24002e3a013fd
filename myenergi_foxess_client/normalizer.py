"""Normalize vendor payloads into telemetry snapshots.

Defaults: a field that is absent (or not numeric) from an otherwise valid
payload is reported as zero and logged. Partial telemetry is degraded,
not failed. Only a missing device record is DataNotFoundError.

Unit conversion: myenergi reports diversion in watts. Fox ESS variants
differ; whether its power values are watts is the per-integration
``power_in_watts`` flag, never guessed from the magnitude.
"""

from __future__ import annotations

import json
import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .constants import (
    EDDI_DEVICE_KEY,
    EDDI_DIVERSION_FIELD,
    EDDI_STATUS_FIELDS,
    FOXESS_GRID_POWER,
    FOXESS_SOLAR_POWER,
    FOXESS_STATE_OF_CHARGE,
    VENDOR_FOXESS,
    VENDOR_MYENERGI,
    WATTS_PER_KILOWATT,
)
from .exceptions import DataNotFoundError
from .models import EddiSnapshot, InverterSnapshot

_LOGGER = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

# A dict with any of these keys is an API envelope, not a flat result.
ENVELOPE_KEYS = frozenset({"errno", "msg", "result"})


def _load_body(raw_body: Any, vendor: str) -> Any:
    """Decode a raw body (str/bytes) or pass an already decoded one through."""
    if not isinstance(raw_body, (str, bytes, bytearray)):
        return raw_body
    try:
        return json.loads(raw_body)
    except ValueError as err:
        raise DataNotFoundError(
            f"{vendor} response is not valid JSON",
            vendor=vendor,
            stage="normalize",
        ) from err


def _to_decimal(value: Any, field: str, vendor: str) -> Decimal:
    if value is None:
        _LOGGER.debug("[%s] %s absent, defaulting to 0", vendor, field)
        return ZERO
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite():
        _LOGGER.warning(
            "[%s] %s has non-numeric value %r, defaulting to 0", vendor, field, value
        )
        return ZERO
    return number


def _round_kw(kilowatts: Decimal) -> Decimal:
    try:
        return kilowatts.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context holds
        _LOGGER.warning("Power value %s out of range, defaulting to 0", kilowatts)
        return ZERO.quantize(TWO_PLACES)


def to_kilowatts(watts: Decimal) -> Decimal:
    """Convert watts to kilowatts rounded half-up to two places.

    Values too large to hold at two places default to zero.
    """
    return _round_kw(watts / WATTS_PER_KILOWATT)


def _find_device_records(body: Any, key: str) -> Any:
    """Find a device-type array in a keyed object or a list of keyed objects."""
    if isinstance(body, dict):
        return body.get(key)
    if isinstance(body, list):
        for item in body:
            if isinstance(item, dict) and key in item:
                return item[key]
    return None


def normalize_eddi(raw_body: Any) -> EddiSnapshot:
    """Normalize a myenergi status payload to an Eddi snapshot.

    Args:
        raw_body: JSON text or decoded payload, e.g. {"eddi": [{"div": 1230, "stat": 3}]}

    Returns:
        EddiSnapshot of the first Eddi

    Raises:
        DataNotFoundError: If the eddi array is absent or empty

    """
    body = _load_body(raw_body, VENDOR_MYENERGI)
    devices = _find_device_records(body, EDDI_DEVICE_KEY)

    if not isinstance(devices, list) or not devices or not isinstance(devices[0], dict):
        _LOGGER.error("[Eddi] No %s records in response", EDDI_DEVICE_KEY)
        raise DataNotFoundError(
            "Eddi data not found in API response",
            vendor=VENDOR_MYENERGI,
            stage="normalize",
        )

    eddi = devices[0]
    diversion = _to_decimal(eddi.get(EDDI_DIVERSION_FIELD), "div", VENDOR_MYENERGI)

    status = 0
    for field in EDDI_STATUS_FIELDS:
        if eddi.get(field) is not None:
            status = int(_to_decimal(eddi[field], field, VENDOR_MYENERGI))
            break
    else:
        _LOGGER.debug("[Eddi] status absent, defaulting to 0")

    snapshot = EddiSnapshot(diversion_kw=to_kilowatts(diversion), status=status)
    _LOGGER.debug("[Eddi] Normalized snapshot: %s", snapshot)
    return snapshot


def _foxess_records(result: Any) -> list[dict[str, Any]]:
    """Flatten the record list(s) of a Fox ESS result."""
    if isinstance(result, dict):
        datas = result.get("datas")
        return [r for r in datas if isinstance(r, dict)] if isinstance(datas, list) else []
    if isinstance(result, list):
        records = []
        for item in result:
            if not isinstance(item, dict):
                continue
            if isinstance(item.get("datas"), list):
                records.extend(r for r in item["datas"] if isinstance(r, dict))
            else:
                records.append(item)
        return records
    return []


def _foxess_value(result: Any, records: list[dict[str, Any]], name: str) -> Any:
    for record in records:
        if record.get("variable", record.get("key")) == name:
            return record.get("value")
    if isinstance(result, dict):
        return result.get(name)
    return None


def normalize_foxess(raw_body: Any, power_in_watts: bool = True) -> InverterSnapshot:
    """Normalize a Fox ESS realtime payload to an inverter snapshot.

    Args:
        raw_body: JSON text or decoded envelope/result. Records are
                  {"variable"|"key": name, "value": number}; a flat result
                  object keyed by name is accepted too.
        power_in_watts: Whether this upstream variant reports watts

    Returns:
        InverterSnapshot, with zero for any record that is absent

    Raises:
        DataNotFoundError: If the envelope has no result

    """
    body = _load_body(raw_body, VENDOR_FOXESS)
    if isinstance(body, dict) and ENVELOPE_KEYS.intersection(body):
        result = body.get("result")
    else:
        result = body

    if not result or not isinstance(result, (dict, list)):
        _LOGGER.error("[Fox ESS] No result in response")
        raise DataNotFoundError(
            "Fox ESS data not found in API response",
            vendor=VENDOR_FOXESS,
            stage="normalize",
        )

    records = _foxess_records(result)

    def power(name: str) -> Decimal:
        value = _to_decimal(_foxess_value(result, records, name), name, VENDOR_FOXESS)
        return to_kilowatts(value) if power_in_watts else _round_kw(value)

    snapshot = InverterSnapshot(
        solar_kw=power(FOXESS_SOLAR_POWER),
        battery_percent=_to_decimal(
            _foxess_value(result, records, FOXESS_STATE_OF_CHARGE),
            FOXESS_STATE_OF_CHARGE,
            VENDOR_FOXESS,
        ),
        grid_kw=power(FOXESS_GRID_POWER),
    )
    _LOGGER.debug(
        "[Fox ESS] Normalized snapshot from %d records (power_in_watts=%s): %s",
        len(records),
        power_in_watts,
        snapshot,
    )
    return snapshot


def normalize(
    vendor: str, raw_body: Any, power_in_watts: bool = True
) -> EddiSnapshot | InverterSnapshot:
    """Normalize a payload for the given vendor tag.

    Raises:
        ValueError: If the vendor tag is unknown
        DataNotFoundError: If the expected device record is absent

    """
    if vendor == VENDOR_MYENERGI:
        return normalize_eddi(raw_body)
    if vendor == VENDOR_FOXESS:
        return normalize_foxess(raw_body, power_in_watts=power_in_watts)
    raise ValueError(f"Invalid vendor: {vendor}")
