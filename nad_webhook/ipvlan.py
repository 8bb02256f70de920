"""Validation and mutation of the proprietary IPVLAN master field.

Users write ``"master": "tenant-bond"`` (or ``provider-bond``); the webhook
rewrites it to ``tenant.<vlan>`` so that the VLAN sub-interface created on
the node is used as the IPVLAN parent. Once rewritten, the VLAN and the bond
of the master field can not change anymore.
"""
import json
import logging

from .errors import (
    InvalidMasterField,
    InvalidVlan,
    MalformedConfig,
    MasterDeviceImmutable,
    MasterVlanMismatch,
    VlanImmutable,
)
from .netconf import decode_netconf, load_document

logger = logging.getLogger("nad-webhook.ipvlan")

BOND_MASTERS = ("tenant-bond", "provider-bond")
CANONICAL_PREFIXES = ("tenant.", "provider.")

CONFIG_PATH = "/spec/config"


def _ipvlan_plugin(doc):
    if "plugins" not in doc:
        return doc if doc.get("type") == "ipvlan" else None
    plugins = doc["plugins"] if isinstance(doc["plugins"], list) else []
    for plugin in plugins:
        if isinstance(plugin, dict) and plugin.get("type") == "ipvlan":
            return plugin
    return None


def vlan_operator_conf(nad):
    """Return the IPVLAN NetConf the VLAN operator handles, or None.

    The operator only takes NADs with a node selector whose config carries an
    ipvlan plugin with both 'vlan' and 'master'.
    """
    if not nad.node_selector or not nad.config:
        return None
    try:
        doc = load_document(nad.config)
        plugin = _ipvlan_plugin(doc)
        if plugin is None or "vlan" not in plugin or "master" not in plugin:
            return None
        return decode_netconf(plugin)
    except MalformedConfig as e:
        logger.debug(f"{nad.ref} is not handled by the vlan operator: {e}")
        return None


def should_trigger_mutation(conf):
    if conf.vlan < 1 or conf.vlan > 4095:
        raise InvalidVlan("IPVLAN vlan field has invalid value. Valid range 1..4095")
    if conf.master in BOND_MASTERS:
        return True
    if not conf.master.startswith(CANONICAL_PREFIXES):
        raise InvalidMasterField(
            "IPVLAN master field has invalid value. Valid value after mutation is tenant.vlan or provider.vlan"
        )
    suffix = conf.master.split(".", 1)[1]
    if not suffix.isdigit() or int(suffix) != conf.vlan:
        raise MasterVlanMismatch(f"IPVLAN master field {conf.master} is incorrect")
    return False


def validate_ipvlan(operation, nad, old_nad=None):
    """Validate an IPVLAN NAD and tell whether its master field has to be rewritten."""
    conf = vlan_operator_conf(nad)
    if conf is None:
        return False

    if operation == "UPDATE" and old_nad is not None:
        old_conf = vlan_operator_conf(old_nad)
        if old_conf is not None:
            if conf.vlan != old_conf.vlan:
                raise VlanImmutable(f"IPVLAN vlan field can not change: {old_conf.vlan}->{conf.vlan}")
            if conf.master_role != old_conf.master_role:
                raise MasterDeviceImmutable(f"IPVLAN device in master field can not change: {old_conf.master}")

    return should_trigger_mutation(conf)


def dump_config(doc):
    return json.dumps(doc, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def mutate_config(raw):
    """Rewrite '<role>-bond' into '<role>.<vlan>' and return the new config text."""
    doc = load_document(raw)
    plugin = _ipvlan_plugin(doc)
    if plugin is not None:
        master = plugin["master"]
        if not master.startswith(CANONICAL_PREFIXES):
            plugin["master"] = f"{master.split('-')[0]}.{plugin['vlan']}"
    return dump_config(doc)


def mutation_patch(nad):
    config = mutate_config(nad.config)
    logger.debug(f"Mutate: {nad.ref} config {config}")
    return [{"op": "replace", "path": CONFIG_PATH, "value": config}]
