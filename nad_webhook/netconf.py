"""Parsing and structural checks of the CNI configuration held in spec.config.

The configuration is kept as the plain dict that ``json.loads`` returns;
single plugin configs and plugin lists share no schema, so fields are type
checked only where a validator needs them.
"""
import enum
import json
import logging
from dataclasses import dataclass

from .errors import MalformedConfig, MissingPluginType, MissingType

logger = logging.getLogger("nad-webhook.netconf")


class DriverType(enum.Enum):
    IPVLAN = "ipvlan"
    SRIOV = "sriov"
    OTHER = "other"

    @classmethod
    def of(cls, cni_type):
        for member in (cls.IPVLAN, cls.SRIOV):
            if cni_type == member.value:
                return member
        return cls.OTHER


@dataclass(frozen=True)
class NetConf:
    type: str = ""
    vlan: int = 0
    vlan_trunk: str = ""
    master: str = ""

    @property
    def driver(self):
        return DriverType.of(self.type)

    @property
    def master_role(self):
        """'tenant' or 'provider' depending on the bond the master refers to."""
        for role in ("tenant", "provider"):
            if self.master.startswith(role):
                return role
        return ""


def load_document(raw):
    try:
        doc = json.loads(raw)
    except ValueError as e:
        raise MalformedConfig(f"configuration string is not in JSON format: {e}")
    if not isinstance(doc, dict):
        raise MalformedConfig("configuration string is not in JSON format: expected an object")
    return doc


def parse_config(raw, name):
    """Decode spec.config and fill a missing 'name' the way multus does."""
    doc = load_document(raw)
    if not doc.get("name"):
        doc["name"] = name
    return doc


def plugin_list(doc):
    plugins = doc["plugins"]
    if not isinstance(plugins, list):
        raise MalformedConfig("'plugins' must be a list")
    return plugins


def validate_cni_config(doc):
    if "plugins" in doc:
        for i, plugin in enumerate(plugin_list(doc)):
            if not isinstance(plugin, dict) or not plugin.get("type"):
                raise MissingPluginType(f"missing 'type' in plugins[{i}]")
    elif not doc.get("type"):
        raise MissingType("missing 'type' in cni config")


def confirm_loadable(doc):
    """Check the document would load as a CNI config list or, failing that, a standalone config."""
    if "plugins" in doc:
        if not isinstance(doc.get("name"), str) or not doc["name"]:
            list_error = "no name in config list"
        elif not plugin_list(doc):
            list_error = "no plugins in config list"
        else:
            return
        if isinstance(doc.get("type"), str) and doc["type"]:
            logger.info(f"Config is not a valid config list ({list_error}), loaded as a standalone config")
            return
        raise MalformedConfig(f"invalid config: {list_error}")
    if not isinstance(doc.get("type"), str):
        raise MalformedConfig("invalid config: 'type' must be a string")


def decode_netconf(plugin):
    """Build a NetConf from one plugin dict, rejecting wrongly typed fields."""
    vlan = plugin.get("vlan", 0)
    if isinstance(vlan, bool) or not isinstance(vlan, int):
        raise MalformedConfig(f"vlan field must be an integer, got {vlan!r}")
    values = {}
    for key, attr in (("type", "type"), ("vlan_trunk", "vlan_trunk"), ("master", "master")):
        value = plugin.get(key, "")
        if not isinstance(value, str):
            raise MalformedConfig(f"{key} field must be a string, got {value!r}")
        values[attr] = value
    return NetConf(vlan=vlan, **values)


def topology_member(doc):
    """Return the plugin dict that carries the VLAN topology of a config."""
    if "plugins" not in doc:
        return doc
    plugins = [p for p in plugin_list(doc) if isinstance(p, dict)]
    for plugin in plugins:
        if DriverType.of(plugin.get("type")) is not DriverType.OTHER:
            return plugin
    return plugins[0] if plugins else {}


def decode_topology(nad):
    if not nad.config:
        return NetConf()
    return decode_netconf(topology_member(load_document(nad.config)))


def topology_update(old_nad, new_nad):
    """Decode both versions of an updated NAD.

    Returns (old_conf, new_conf, changed) where changed tells whether a field
    the fabric programs from (driver, vlan, trunk, bond, node selector) moved.
    """
    old_conf = decode_topology(old_nad)
    new_conf = decode_topology(new_nad)
    changed = (
        (old_conf.type, old_conf.vlan, old_conf.vlan_trunk, old_conf.master_role)
        != (new_conf.type, new_conf.vlan, new_conf.vlan_trunk, new_conf.master_role)
        or old_nad.node_selector != new_nad.node_selector
    )
    if changed:
        logger.info(f"Topology of {new_nad.ref} changes: {old_conf} -> {new_conf}")
    return old_conf, new_conf, changed
