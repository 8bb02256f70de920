import logging
import re

from .errors import (
    ConflictingVlanFields,
    InvalidTrunkRange,
    InvalidVlan,
    MissingVlanField,
    ReservedVlanUsed,
    UnsupportedQos,
)

logger = logging.getLogger("nad-webhook.sriov")

VLAN_MIN = 1
VLAN_MAX = 4095

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


def as_int(value):
    """Read an integer that may have been written as a JSON number or string.

    Returns None when the value is not an integer.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_RE.match(value):
        return int(value)
    return None


def parse_trunk_range(item):
    bounds = item.split("-")
    low, high = as_int(bounds[0]), as_int(bounds[-1])
    if low is None or high is None:
        raise InvalidTrunkRange("vlan_trunk field format error")
    if low > high or low < VLAN_MIN or high > VLAN_MAX:
        raise InvalidTrunkRange("vlan_trunk field range error")
    return low, high


def iter_trunk(trunk):
    """Yield (low, high) for each entry of "10,20-30", failing on the first bad one."""
    for item in str(trunk).split(","):
        yield parse_trunk_range(item)


def parse_trunk(trunk):
    return list(iter_trunk(trunk))


def validate_sriov_config(doc, infra_vlans=frozenset()):
    """Check the VLAN fields of an sriov config against the reserved infra VLANs.

    Does nothing for other CNI types. With an empty ``infra_vlans`` only the
    structural rules are enforced.
    """
    if doc.get("type") != "sriov":
        return

    check_infra = bool(infra_vlans)
    has_vlan = "vlan" in doc
    has_trunk = "vlan_trunk" in doc

    if has_vlan and has_trunk:
        raise ConflictingVlanFields("both vlan and vlan_trunk fields are defined")
    if check_infra and not has_vlan and not has_trunk:
        raise MissingVlanField("either vlan or vlan_trunk field should be defined")

    if has_vlan:
        vlan = as_int(doc["vlan"])
        if vlan is None:
            raise InvalidVlan("vlan field format error")
        if check_infra and vlan in infra_vlans:
            raise ReservedVlanUsed(f"infrastructure vlan id {vlan} shall not be used in vlan field")

    if has_trunk:
        for low, high in iter_trunk(doc["vlan_trunk"]):
            if not check_infra:
                continue
            for infra_vlan in sorted(infra_vlans):
                if low <= infra_vlan <= high:
                    raise ReservedVlanUsed(
                        f"infrastructure vlan id {infra_vlan} shall not be used in vlan_trunk field"
                    )

    # TODO: confirm with the platform team whether vlanQoS should be restricted
    # when no infrastructure vlans are configured
    if check_infra and "vlanQoS" in doc:
        qos = as_int(doc["vlanQoS"])
        if qos is None:
            raise UnsupportedQos("qos field format error")
        if qos != 0:
            raise UnsupportedQos(f"qos {qos} is defined while only default qos (0) is allowed")
