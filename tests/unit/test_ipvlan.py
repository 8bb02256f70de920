import json

import pytest

from nad_webhook.errors import (
    InvalidMasterField,
    InvalidVlan,
    MasterDeviceImmutable,
    MasterVlanMismatch,
    VlanImmutable,
)
from nad_webhook.ipvlan import mutate_config, mutation_patch, validate_ipvlan, vlan_operator_conf
from nad_webhook.nad import NODE_SELECTOR_KEY, NetworkAttachmentDefinition


def ipvlan_nad(master, vlan, node_selector="kubernetes.io/hostname=worker-1", plugins=False):
    conf = {"cniVersion": "0.3.1", "type": "ipvlan", "master": master, "vlan": vlan, "ipam": {"type": "whereabouts"}}
    if plugins:
        conf = {"cniVersion": "0.3.1", "name": "net-a", "plugins": [{"type": "tuning"}, conf]}
    annotations = {NODE_SELECTOR_KEY: node_selector} if node_selector else {}
    return NetworkAttachmentDefinition(name="net-a", namespace="default", config=json.dumps(conf), annotations=annotations)


def master_of(config):
    doc = json.loads(config)
    if "plugins" in doc:
        doc = doc["plugins"][1]
    return doc["master"]


def test_bond_master_requires_mutation():
    nad = ipvlan_nad("tenant-bond", 10)

    assert validate_ipvlan("CREATE", nad) is True
    assert master_of(mutate_config(nad.config)) == "tenant.10"


def test_provider_bond_in_plugin_list_requires_mutation():
    nad = ipvlan_nad("provider-bond", 33, plugins=True)

    assert validate_ipvlan("CREATE", nad) is True
    assert master_of(mutate_config(nad.config)) == "provider.33"


def test_canonical_master_needs_no_mutation():
    assert validate_ipvlan("CREATE", ipvlan_nad("tenant.10", 10)) is False


def test_canonical_master_with_other_vlan_is_rejected():
    with pytest.raises(MasterVlanMismatch):
        validate_ipvlan("CREATE", ipvlan_nad("tenant.10", 11))


def test_master_with_non_numeric_suffix_is_rejected():
    with pytest.raises(MasterVlanMismatch):
        validate_ipvlan("CREATE", ipvlan_nad("tenant.abc", 10))


def test_unknown_master_is_rejected():
    with pytest.raises(InvalidMasterField):
        validate_ipvlan("CREATE", ipvlan_nad("eth0", 10))


@pytest.mark.parametrize("vlan", [0, 4096, -1])
def test_vlan_out_of_range_is_rejected(vlan):
    with pytest.raises(InvalidVlan):
        validate_ipvlan("CREATE", ipvlan_nad("tenant-bond", vlan))


def test_without_node_selector_nothing_is_checked():
    nad = ipvlan_nad("eth0", 0, node_selector="")

    assert vlan_operator_conf(nad) is None
    assert validate_ipvlan("CREATE", nad) is False


def test_ipvlan_without_vlan_is_not_handled():
    nad = NetworkAttachmentDefinition(
        name="net-a",
        config=json.dumps({"type": "ipvlan", "master": "eth0"}),
        annotations={NODE_SELECTOR_KEY: "a=b"},
    )

    assert validate_ipvlan("CREATE", nad) is False


def test_update_changing_vlan_is_rejected():
    old = ipvlan_nad("tenant.10", 10)
    new = ipvlan_nad("tenant.10", 20)

    with pytest.raises(VlanImmutable):
        validate_ipvlan("UPDATE", new, old)


def test_update_changing_bond_is_rejected():
    old = ipvlan_nad("tenant.10", 10)
    new = ipvlan_nad("provider-bond", 10)

    with pytest.raises(MasterDeviceImmutable):
        validate_ipvlan("UPDATE", new, old)


def test_update_resubmitting_bond_form_requires_mutation():
    old = ipvlan_nad("tenant.10", 10)
    new = ipvlan_nad("tenant-bond", 10)

    assert validate_ipvlan("UPDATE", new, old) is True


def test_update_from_unhandled_nad_is_a_create():
    old = ipvlan_nad("tenant-bond", 10, node_selector="")
    new = ipvlan_nad("tenant-bond", 20)

    assert validate_ipvlan("UPDATE", new, old) is True


def test_mutation_is_a_fixed_point():
    nad = ipvlan_nad("tenant-bond", 10)

    once = mutate_config(nad.config)
    twice = mutate_config(once)

    assert once == twice
    assert master_of(twice) == "tenant.10"


def test_mutation_keeps_other_fields():
    nad = ipvlan_nad("tenant-bond", 10)

    doc = json.loads(mutate_config(nad.config))

    assert doc["ipam"] == {"type": "whereabouts"}
    assert doc["vlan"] == 10


def test_mutation_patch_replaces_config():
    nad = ipvlan_nad("tenant-bond", 10)

    patch = mutation_patch(nad)

    assert len(patch) == 1
    assert patch[0]["op"] == "replace"
    assert patch[0]["path"] == "/spec/config"
    assert master_of(patch[0]["value"]) == "tenant.10"
