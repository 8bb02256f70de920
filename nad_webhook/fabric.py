"""Cluster wide VLAN topology consistency for fabric managed NADs.

Two fabric managed NADs using the same driver and VLAN end up on the same
fabric segment, so they have to agree on the external project/network (or
on the SR-IOV trunk overlays) and on the node selector.

The check reads a point-in-time listing of all NADs and holds no lock: two
conflicting NADs admitted concurrently can both pass. The API server, not
this webhook, serialises writes.
"""
import logging

from .errors import MalformedConfig, NodeSelectorMismatch, OverlayMismatch, ProjectNetworkMismatch
from .netconf import DriverType, decode_topology, topology_update

logger = logging.getLogger("nad-webhook.fabric")

VLAN_MODE = "vlan"
OVERLAY_MODE = "overlay"


def _ipvlan_mode(nad, conf, other, other_conf):
    # same vlan number on different bonds is a different segment
    if conf.master_role != other_conf.master_role:
        return None
    return VLAN_MODE


def _sriov_mode(nad, conf, other, other_conf):
    if nad.sriov_resource != other.sriov_resource:
        return None
    if conf.vlan_trunk:
        if conf.vlan_trunk != other_conf.vlan_trunk:
            return None
        return OVERLAY_MODE
    if conf.vlan == 0:
        # untagged
        return None
    return VLAN_MODE


def _unmanaged_mode(nad, conf, other, other_conf):
    return None


SHARING_MODES = {
    DriverType.IPVLAN: _ipvlan_mode,
    DriverType.SRIOV: _sriov_mode,
    DriverType.OTHER: _unmanaged_mode,
}


def check_pair(nad, conf, other, other_conf):
    """Raise if ``other`` shares the VLAN topology of ``nad`` inconsistently."""
    if conf.type != other_conf.type or conf.vlan != other_conf.vlan:
        return
    mode = SHARING_MODES[conf.driver](nad, conf, other, other_conf)
    if mode is None:
        return

    if mode == VLAN_MODE:
        if (nad.ext_project_id, nad.ext_network_id) != (other.ext_project_id, other.ext_network_id):
            raise ProjectNetworkMismatch(
                f"{nad.ref} and {other.ref} has the same vlan ({conf.vlan}) but different "
                f"extProject/extNetwork ({nad.ext_project_id}/{nad.ext_network_id} vs "
                f"{other.ext_project_id}/{other.ext_network_id})"
            )
    elif nad.sriov_overlays != other.sriov_overlays:
        raise OverlayMismatch(
            f"{nad.ref} and {other.ref} has the same vlanTrunk ({conf.vlan_trunk}) but different "
            f"Overlays ({nad.sriov_overlays} vs {other.sriov_overlays})"
        )

    if nad.node_selector != other.node_selector:
        raise NodeSelectorMismatch(
            f"{nad.ref} and {other.ref} has the same vlan toplogy but different nodeSelector "
            f"({nad.node_selector} vs {other.node_selector})"
        )


def validate_fabric(operation, nad, old_nad, lister):
    """Check ``nad`` against every other NAD in the cluster.

    ``lister`` returns the current NetworkAttachmentDefinitions of all
    namespaces.
    """
    old_managed = old_nad is not None and old_nad.is_fabric_managed()
    if not nad.is_fabric_managed() and not old_managed:
        return

    if operation == "UPDATE" and old_nad is not None:
        _, conf, _ = topology_update(old_nad, nad)
    else:
        conf = decode_topology(nad)

    if not nad.is_fabric_managed():
        logger.info(f"{nad.ref} leaves fabric management, skipping vlan sharing check")
        return

    for other in lister.list_network_attachment_definitions():
        if other.name == nad.name:
            continue
        if not other.is_fabric_managed():
            continue
        try:
            other_conf = decode_topology(other)
        except MalformedConfig as e:
            raise MalformedConfig(f"failed to decode {other.ref}: {e}")
        check_pair(nad, conf, other, other_conf)
