import json

from nad_webhook.errors import (
    ConflictingVlanFields,
    InvalidName,
    MalformedConfig,
    MasterVlanMismatch,
    MissingType,
    ProjectNetworkMismatch,
    ReservedVlanUsed,
)
from nad_webhook.nad import EXT_NETWORK_ID_KEY, EXT_PROJECT_ID_KEY, NODE_SELECTOR_KEY, NetworkAttachmentDefinition
from nad_webhook.validator import review_network_attachment_definition


class FakeLister:
    def __init__(self, *nads):
        self.nads = list(nads)

    def list_network_attachment_definitions(self):
        return list(self.nads)


def build_nad(name="net-a", config=None, annotations=None):
    text = config if isinstance(config, str) else json.dumps(config)
    return NetworkAttachmentDefinition(name=name, namespace="default", config=text, annotations=annotations or {})


def review(nad, old_nad=None, operation="CREATE", lister=None, infra_vlans=frozenset()):
    return review_network_attachment_definition(operation, nad, old_nad, lister or FakeLister(), infra_vlans)


def test_invalid_name_is_denied():
    verdict = review(build_nad(name="Net_A", config={"type": "bridge"}))

    assert verdict.allowed is False
    assert isinstance(verdict.error, InvalidName)


def test_empty_config_is_allowed():
    verdict = review(build_nad(config=""))

    assert verdict.allowed is True
    assert verdict.mutation_required is False
    assert verdict.message == ""


def test_non_json_config_is_denied():
    verdict = review(build_nad(config="{not json"))

    assert isinstance(verdict.error, MalformedConfig)


def test_missing_type_is_denied():
    verdict = review(build_nad(config={"cniVersion": "0.3.1"}))

    assert isinstance(verdict.error, MissingType)
    assert verdict.message == "missing 'type' in cni config"


def test_nameless_plugin_list_is_allowed():
    # the object name is used when the config has none
    verdict = review(build_nad(config={"cniVersion": "0.3.1", "plugins": [{"type": "bridge"}]}))

    assert verdict.allowed is True


def test_sriov_rules_use_infra_vlans():
    nad = build_nad(config={"type": "sriov", "vlan": 100})

    assert isinstance(review(nad, infra_vlans=frozenset({100})).error, ReservedVlanUsed)
    assert review(nad).allowed is True


def test_sriov_conflicting_fields_are_denied():
    verdict = review(build_nad(config={"type": "sriov", "vlan": 5, "vlan_trunk": "1-4"}))

    assert isinstance(verdict.error, ConflictingVlanFields)


def test_ipvlan_bond_master_is_allowed_with_mutation():
    nad = build_nad(
        config={"type": "ipvlan", "master": "tenant-bond", "vlan": 10},
        annotations={NODE_SELECTOR_KEY: "zone=a"},
    )

    verdict = review(nad)

    assert verdict.allowed is True
    assert verdict.mutation_required is True


def test_ipvlan_mismatching_master_is_denied():
    nad = build_nad(
        config={"type": "ipvlan", "master": "tenant.10", "vlan": 11},
        annotations={NODE_SELECTOR_KEY: "zone=a"},
    )

    assert isinstance(review(nad).error, MasterVlanMismatch)


def test_fabric_conflict_is_denied_without_mutation():
    annotations = {NODE_SELECTOR_KEY: "zone=a", EXT_PROJECT_ID_KEY: "p1", EXT_NETWORK_ID_KEY: "n1"}
    existing = build_nad(name="net-x", config={"type": "ipvlan", "master": "tenant.10", "vlan": 10}, annotations=annotations)
    nad = build_nad(
        config={"type": "ipvlan", "master": "tenant-bond", "vlan": 10},
        annotations={**annotations, EXT_PROJECT_ID_KEY: "p2"},
    )

    verdict = review(nad, lister=FakeLister(existing))

    assert verdict.allowed is False
    assert verdict.mutation_required is False
    assert isinstance(verdict.error, ProjectNetworkMismatch)
