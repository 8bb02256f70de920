"""Backends that program VLANs into the network fabric.

The admission webhook never calls a provider itself; ``main()`` connects the one
named by VLAN_PROVIDER and hands it to the operators through ``app.config``.

Provider config file (YAML)::

    endpoint: https://fabric.example.com/api
    token: s3cr3t
    ca_cert: /etc/vlan-provider/ca.crt
    timeout: 30
"""
import abc
import json
import logging
from dataclasses import dataclass, field

import requests
import yaml

logger = logging.getLogger("nad-webhook.vlanprovider")


class VlanProviderError(Exception):
    pass


@dataclass
class Nic:
    name: str
    mac_address: str = ""


@dataclass
class NodeTopology:
    """NICs of a node grouped by bond and by SR-IOV resource pool."""

    bonds: dict = field(default_factory=dict)
    sriov_pools: dict = field(default_factory=dict)

    @classmethod
    def from_json(cls, text):
        try:
            data = json.loads(text)
        except ValueError as e:
            raise VlanProviderError(f"invalid node topology: {e}")
        if not isinstance(data, dict):
            raise VlanProviderError("invalid node topology: expected an object")
        return cls(bonds=data.get("bonds") or {}, sriov_pools=data.get("sriovPools") or {})

    def nics(self):
        for group in (self.bonds, self.sriov_pools):
            for nic_map in group.values():
                for name, nic in nic_map.items():
                    yield Nic(name=name, mac_address=nic.get("mac-address", ""))

    def to_dict(self):
        return {"bonds": self.bonds, "sriovPools": self.sriov_pools}


class VlanProvider(abc.ABC):
    @abc.abstractmethod
    def connect(self):
        """Open the connection to the fabric controller."""

    @abc.abstractmethod
    def update_node_topology(self, node, topology):
        """Register the NIC topology (JSON text) of ``node``; returns the stored topology."""

    @abc.abstractmethod
    def attach(self, network, vlan, nodes):
        pass

    @abc.abstractmethod
    def detach(self, network, vlan, nodes):
        pass


class RestVlanProvider(VlanProvider):
    """Provider talking to a fabric controller REST API."""

    name = ""

    def __init__(self, config_file, session=None):
        self.config_file = config_file
        self.session = session
        self.endpoint = ""
        self.timeout = 30

    def load_config(self):
        try:
            with open(self.config_file) as f:
                cfg = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise VlanProviderError(f"cannot read {self.name} provider config {self.config_file}: {e}")
        if not cfg.get("endpoint"):
            raise VlanProviderError(f"{self.name} provider config {self.config_file} has no endpoint")
        return cfg

    def connect(self):
        cfg = self.load_config()
        self.endpoint = cfg["endpoint"].rstrip("/")
        self.timeout = cfg.get("timeout", 30)
        if self.session is None:
            self.session = requests.Session()
        if cfg.get("token"):
            self.session.headers["Authorization"] = f"Bearer {cfg['token']}"
        if cfg.get("ca_cert"):
            self.session.verify = cfg["ca_cert"]
        self._request("GET", "")
        logger.info(f"Connected to {self.name} vlan provider at {self.endpoint}")

    def _request(self, method, path, body=None):
        url = f"{self.endpoint}{path}"
        try:
            resp = self.session.request(method, url, json=body, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise VlanProviderError(f"{self.name} vlan provider {method} {url} failed: {e}")
        return resp

    def update_node_topology(self, node, topology):
        topo = NodeTopology.from_json(topology)
        resp = self._request("PUT", f"/nodes/{node}/topology", topo.to_dict())
        logger.info(f"Updated topology of node {node}: {len(list(topo.nics()))} nics")
        return resp.text

    def attach(self, network, vlan, nodes):
        self._request("POST", f"/vlans/{vlan}/attach", {"network": network, "nodes": list(nodes)})
        logger.info(f"Attached vlan {vlan} of {network} to nodes {nodes}")

    def detach(self, network, vlan, nodes):
        self._request("POST", f"/vlans/{vlan}/detach", {"network": network, "nodes": list(nodes)})
        logger.info(f"Detached vlan {vlan} of {network} from nodes {nodes}")


class OpenstackVlanProvider(RestVlanProvider):
    name = "openstack"


class BaremetalVlanProvider(RestVlanProvider):
    name = "baremetal"


PROVIDERS = {
    "openstack": OpenstackVlanProvider,
    "baremetal": BaremetalVlanProvider,
}


def new_vlan_provider(provider, config_file, session=None):
    """Create and connect the provider named ``provider``."""
    try:
        cls = PROVIDERS[provider]
    except KeyError:
        raise VlanProviderError(f"Not supported provider: {provider!r}")
    instance = cls(config_file, session=session)
    instance.connect()
    return instance
