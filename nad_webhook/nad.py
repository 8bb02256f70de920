from dataclasses import dataclass, field

from .errors import DecodeFailure

# ------------------------
# Annotation keys
# ------------------------
NODE_SELECTOR_KEY = "k8s.v1.cni.cncf.io/nodeSelector"
EXT_PROJECT_ID_KEY = "nokia.com/extProjectID"
EXT_NETWORK_ID_KEY = "nokia.com/extNetworkID"
SRIOV_RESOURCE_KEY = "k8s.v1.cni.cncf.io/resourceName"
SRIOV_OVERLAYS_KEY = "nokia.com/sriov-vf-vlan-trunk-overlays"

NAD_GROUP = "k8s.cni.cncf.io"
NAD_VERSION = "v1"
NAD_PLURAL = "network-attachment-definitions"


@dataclass
class NetworkAttachmentDefinition:
    name: str = ""
    namespace: str = ""
    config: str = ""
    annotations: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj):
        """Build a NAD from its JSON representation (as sent by the API server)."""
        if obj is None:
            return cls()
        if not isinstance(obj, dict):
            raise DecodeFailure(f"network attachment definition must be an object, got {type(obj).__name__}")
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        config = spec.get("config", "")
        if not isinstance(config, str):
            raise DecodeFailure("spec.config must be a string")
        annotations = metadata.get("annotations") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            config=config,
            annotations=dict(annotations),
        )

    def annotation(self, key):
        return self.annotations.get(key, "")

    @property
    def node_selector(self):
        return self.annotation(NODE_SELECTOR_KEY)

    @property
    def ext_project_id(self):
        return self.annotation(EXT_PROJECT_ID_KEY)

    @property
    def ext_network_id(self):
        return self.annotation(EXT_NETWORK_ID_KEY)

    @property
    def sriov_overlays(self):
        return self.annotation(SRIOV_OVERLAYS_KEY)

    @property
    def sriov_resource(self):
        return self.annotation(SRIOV_RESOURCE_KEY)

    @property
    def ref(self):
        return f"{self.namespace}/{self.name}"

    def is_fabric_managed(self):
        """True when the fabric has to keep this NAD's VLAN topology consistent."""
        if not self.node_selector:
            return False
        if self.ext_project_id and self.ext_network_id:
            return True
        return bool(self.sriov_overlays)
