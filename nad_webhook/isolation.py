import json
import logging
import re
from dataclasses import dataclass

from .errors import CrossNamespaceReference, DecodeFailure, InvalidTokenFormat

logger = logging.getLogger("nad-webhook.isolation")

NETWORKS_ANNOTATION_KEY = "k8s.v1.cni.cncf.io/networks"
LOCAL_NAMESPACE = "_local"

# DNS-1123 label
_TOKEN_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


@dataclass
class NetworkSelectionElement:
    name: str
    namespace: str = ""
    interface: str = ""


def _check_tokens(*tokens):
    for token in tokens:
        if token and not _TOKEN_RE.match(token):
            raise InvalidTokenFormat(
                "Failed to parse: one or more items did not match comma-delimited format "
                "(must consist of lower case alphanumeric characters). Must start and end "
                f"with an alphanumeric character), mismatch @ '{token}'"
            )


def parse_network_object_name(item):
    """Split '[namespace/]name[@interface]' into its three parts."""
    namespace = ""
    interface = ""
    slash_items = item.split("/")
    if len(slash_items) == 2:
        namespace = slash_items[0].strip()
        name = slash_items[1]
    elif len(slash_items) == 1:
        name = slash_items[0]
    else:
        raise InvalidTokenFormat("Invalid network object (failed at '/')")

    at_items = name.split("@")
    name = at_items[0].strip()
    if len(at_items) == 2:
        interface = at_items[1].strip()
    elif len(at_items) != 1:
        raise InvalidTokenFormat("Invalid network object (failed at '@')")

    _check_tokens(namespace, name, interface)
    return namespace, name, interface


def _parse_json_networks(annotation):
    try:
        items = json.loads(annotation)
    except ValueError as e:
        raise InvalidTokenFormat(f"failed to parse pod Network Attachment Selection Annotation JSON format: {e}")
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise InvalidTokenFormat("Network Attachment Selection Annotation JSON must be a list of objects")

    networks = []
    for item in items:
        element = NetworkSelectionElement(
            name=str(item.get("name") or ""),
            namespace=str(item.get("namespace") or ""),
            interface=str(item.get("interface") or ""),
        )
        _check_tokens(element.namespace, element.name, element.interface)
        networks.append(element)
    return networks


def parse_network_annotation(annotation, default_namespace=LOCAL_NAMESPACE):
    if any(c in annotation for c in '[{"'):
        networks = _parse_json_networks(annotation)
    else:
        networks = []
        for item in annotation.split(","):
            namespace, name, interface = parse_network_object_name(item.strip())
            networks.append(NetworkSelectionElement(name=name, namespace=namespace, interface=interface))
    for network in networks:
        if not network.namespace:
            network.namespace = default_namespace
    return networks


def check_isolation(obj):
    """Reject a workload whose networks annotation refers to another namespace."""
    if not isinstance(obj, dict):
        raise DecodeFailure("could not decode the reviewed object")
    annotations = (obj.get("metadata") or {}).get("annotations") or {}
    annotation = annotations.get(NETWORKS_ANNOTATION_KEY, "")
    if not annotation:
        return

    logger.info(f"Analyzing {NETWORKS_ANNOTATION_KEY} annotation: {annotation}")
    for network in parse_network_annotation(annotation):
        if network.namespace != LOCAL_NAMESPACE:
            raise CrossNamespaceReference(
                f"{NETWORKS_ANNOTATION_KEY} annotations must not refer to namespaced values "
                "(must use local namespace, i.e. must not contain a /), "
                f"rejected: {annotation} (namespace: {network.namespace})"
            )
    logger.info(f"Allowed value: {annotation}")
