import logging
import os

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from .errors import ClusterListError
from .nad import NAD_GROUP, NAD_PLURAL, NAD_VERSION, NetworkAttachmentDefinition

logger = logging.getLogger("nad-webhook.kube")


def init_k8s_client(kubeconfig=None):
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        if kubeconfig and os.path.exists(kubeconfig):
            logger.info(f"Loading kubeconfig from {kubeconfig}")
            config.load_kube_config(config_file=kubeconfig)
        else:
            logger.info("Loading default kubeconfig from ~/.kube/config")
            config.load_kube_config()
    return client.CustomObjectsApi()


class NadLister:
    """Lists NetworkAttachmentDefinitions of all namespaces."""

    def __init__(self, custom_api):
        self.custom_api = custom_api

    def list_network_attachment_definitions(self):
        try:
            items = self.custom_api.list_cluster_custom_object(NAD_GROUP, NAD_VERSION, NAD_PLURAL)["items"]
        except ApiException as e:
            logger.error(f"Failed to list network attachment definitions: {e.status} {e.reason}")
            raise ClusterListError(f"failed to list network attachment definitions: {e.reason}")
        except Exception as e:
            # transport errors (urllib3) when the API server is unreachable
            logger.error(f"Failed to list network attachment definitions: {e}")
            raise ClusterListError(f"failed to list network attachment definitions: {e}")
        return [NetworkAttachmentDefinition.from_dict(item) for item in items]
