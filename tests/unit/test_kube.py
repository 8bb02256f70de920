import json

import pytest
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import MaxRetryError

from nad_webhook.errors import ClusterListError
from nad_webhook.kube import NadLister


class FakeCustomObjectsApi:
    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error
        self.calls = []

    def list_cluster_custom_object(self, group, version, plural):
        self.calls.append((group, version, plural))
        if self.error:
            raise self.error
        return {"items": self.items}


def test_lists_nads_of_all_namespaces():
    api = FakeCustomObjectsApi(items=[
        {
            "metadata": {"name": "net-a", "namespace": "ns1", "annotations": {"k8s.v1.cni.cncf.io/nodeSelector": "zone=a"}},
            "spec": {"config": json.dumps({"type": "sriov", "vlan": 5})},
        },
        {"metadata": {"name": "net-b", "namespace": "ns2"}, "spec": {}},
    ])

    nads = NadLister(api).list_network_attachment_definitions()

    assert api.calls == [("k8s.cni.cncf.io", "v1", "network-attachment-definitions")]
    assert [n.ref for n in nads] == ["ns1/net-a", "ns2/net-b"]
    assert nads[0].node_selector == "zone=a"
    assert nads[1].config == ""


def test_api_error_becomes_cluster_list_error():
    api = FakeCustomObjectsApi(error=ApiException(status=403, reason="Forbidden"))

    with pytest.raises(ClusterListError, match="Forbidden"):
        NadLister(api).list_network_attachment_definitions()


def test_unreachable_api_server_becomes_cluster_list_error():
    error = MaxRetryError(None, "/apis/k8s.cni.cncf.io/v1/network-attachment-definitions", reason="Connection refused")
    api = FakeCustomObjectsApi(error=error)

    with pytest.raises(ClusterListError, match="Max retries exceeded"):
        NadLister(api).list_network_attachment_definitions()
