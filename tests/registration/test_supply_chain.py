# tests/registration/test_supply_chain.py

import pytest

from kubechain.core.exceptions import ConfigurationError, TopologyError
from kubechain.models.commodity import CommodityType, EntityType
from kubechain.models.supply_chain import (
    MatchingType,
    ProviderTemplate,
    ProviderType,
    TemplateCommodity,
    TemplateDTO,
    TemplateType,
)
from kubechain.registration.stitching import PROXY_VM_IP, PROXY_VM_UUID
from kubechain.registration.supply_chain import SupplyChainFactory, validate_supply_chain


def _by_kind(templates):
    return {t.template_class: t for t in templates}


@pytest.fixture
def uuid_supply_chain():
    return SupplyChainFactory("UUID").create_supply_chain()


def test_every_entity_kind_has_one_template(uuid_supply_chain):
    kinds = [t.template_class for t in uuid_supply_chain]
    assert len(kinds) == len(set(kinds))
    assert set(kinds) == set(EntityType)


def test_service_is_the_only_root(uuid_supply_chain):
    bought_from = {p.provider for t in uuid_supply_chain for p in t.buys}
    roots = [t.template_class for t in uuid_supply_chain if t.template_class not in bought_from]
    assert roots == [EntityType.SERVICE]


def test_virtual_machine_is_the_only_terminal(uuid_supply_chain):
    terminals = [t.template_class for t in uuid_supply_chain if not t.buys]
    assert terminals == [EntityType.VIRTUAL_MACHINE]


def test_graph_is_acyclic(uuid_supply_chain):
    templates = _by_kind(uuid_supply_chain)
    order = []

    def visit(kind, path):
        assert kind not in path, f"cycle through {kind}"
        for provider in templates[kind].provider_kinds():
            visit(provider, path | {kind})
        order.append(kind)

    visit(EntityType.SERVICE, frozenset())
    assert set(order) == set(templates)


def test_bought_commodities_are_sold_by_provider(uuid_supply_chain):
    templates = _by_kind(uuid_supply_chain)
    for template in uuid_supply_chain:
        for provider in template.buys:
            sold = set(templates[provider.provider].sells_types())
            assert {c.commodity_type for c in provider.commodities} <= sold


def test_container_spec_is_linked(uuid_supply_chain):
    templates = _by_kind(uuid_supply_chain)
    container = templates[EntityType.CONTAINER]
    assert container.buys_from(EntityType.CONTAINER_SPEC) == [
        CommodityType.VCPU,
        CommodityType.VMEM,
        CommodityType.VCPU_REQUEST,
        CommodityType.VMEM_REQUEST,
    ]
    assert EntityType.VIRTUAL_DATACENTER in templates[EntityType.CONTAINER_SPEC].provider_kinds()


def test_pod_buys_from_node_and_quota(uuid_supply_chain):
    pod = _by_kind(uuid_supply_chain)[EntityType.CONTAINER_POD]
    hosting = next(p for p in pod.buys if p.provider == EntityType.VIRTUAL_MACHINE)
    assert hosting.provider_type == ProviderType.HOSTING
    quota = next(p for p in pod.buys if p.provider == EntityType.VIRTUAL_DATACENTER)
    assert quota.provider_type == ProviderType.LAYERED_OVER
    assert all(c.key for c in quota.commodities)


def test_uuid_stitching_metadata(uuid_supply_chain):
    templates = _by_kind(uuid_supply_chain)
    metadata = templates[EntityType.VIRTUAL_MACHINE].merged_entity_metadata

    assert metadata.internal_matching_type == MatchingType.STRING
    assert metadata.internal_matching.property_name == PROXY_VM_UUID
    assert metadata.external_matching.field_name == "id"
    assert metadata.patched_fields[0].field_name == "actionEligibility"

    link = templates[EntityType.CONTAINER_POD].external_links[0]
    assert link.seller == EntityType.VIRTUAL_MACHINE
    assert link.probe_entity_property_defs[0].name == "UUID"
    assert link.external_entity_property_defs[0].attribute == "UUID"


def test_ip_stitching_metadata():
    templates = _by_kind(SupplyChainFactory("IP").create_supply_chain())
    metadata = templates[EntityType.VIRTUAL_MACHINE].merged_entity_metadata

    assert metadata.internal_matching_type == MatchingType.LIST_STRING
    assert metadata.internal_matching.property_name == PROXY_VM_IP
    assert metadata.internal_matching.delimiter == ","
    assert metadata.external_matching.field_name == "ipAddress"
    assert metadata.external_matching.field_paths == ("virtualMachineData",)

    for kind in (EntityType.CONTAINER_POD, EntityType.VIRTUAL_DATACENTER):
        link = templates[kind].external_links[0]
        assert link.probe_entity_property_defs[0].name == "ipAddress"
        assert link.probe_entity_property_defs[0].name == metadata.external_matching.field_name
        assert link.external_entity_property_defs[0].attribute == "IP"


def test_node_sold_commodity_metadata(uuid_supply_chain):
    metadata = _by_kind(uuid_supply_chain)[EntityType.VIRTUAL_MACHINE].merged_entity_metadata
    fields = {m.commodity_type: m.fields for m in metadata.commodities_sold_metadata}

    assert fields[CommodityType.VCPU] == ("used", "capacity", "peak", "resizable")
    assert fields[CommodityType.CLUSTER] == ("capacity",)
    assert fields[CommodityType.VCPU_LIMIT_QUOTA] == ("used", "capacity")


def test_node_template_priority_and_type():
    default_vm = _by_kind(SupplyChainFactory("UUID").create_supply_chain())[EntityType.VIRTUAL_MACHINE]
    assert default_vm.priority == -1
    assert default_vm.template_type == TemplateType.EXTENSION

    base_vm = _by_kind(SupplyChainFactory("UUID", vm_priority=2, base=True).create_supply_chain())[
        EntityType.VIRTUAL_MACHINE
    ]
    assert base_vm.priority == 2
    assert base_vm.template_type == TemplateType.BASE


def test_unsupported_stitching_property_type():
    with pytest.raises(ConfigurationError, match="stitching property type MAC is not supported"):
        SupplyChainFactory("MAC").create_supply_chain()


def _template(kind, *providers, sells=(CommodityType.VCPU,)):
    return TemplateDTO(
        template_class=kind,
        sells=tuple(TemplateCommodity(commodity_type=c) for c in sells),
        buys=tuple(
            ProviderTemplate(
                provider=p,
                provider_type=ProviderType.HOSTING,
                commodities=(TemplateCommodity(commodity_type=CommodityType.VCPU),),
            )
            for p in providers
        ),
    )


class TestValidateSupplyChain:
    def test_valid_chain(self):
        validate_supply_chain(
            [
                _template(EntityType.CONTAINER, EntityType.CONTAINER_POD),
                _template(EntityType.CONTAINER_POD, EntityType.VIRTUAL_MACHINE),
                _template(EntityType.VIRTUAL_MACHINE),
            ]
        )

    def test_rejects_cycle(self):
        with pytest.raises(TopologyError):
            validate_supply_chain(
                [
                    _template(EntityType.SERVICE, EntityType.CONTAINER),
                    _template(EntityType.CONTAINER, EntityType.CONTAINER_POD),
                    _template(EntityType.CONTAINER_POD, EntityType.CONTAINER, EntityType.VIRTUAL_MACHINE),
                    _template(EntityType.VIRTUAL_MACHINE),
                ]
            )

    def test_rejects_orphan(self):
        with pytest.raises(TopologyError, match="orphaned"):
            validate_supply_chain(
                [
                    _template(EntityType.SERVICE, EntityType.VIRTUAL_MACHINE),
                    _template(EntityType.CONTAINER, EntityType.CONTAINER_POD),
                    _template(EntityType.CONTAINER_POD, EntityType.CONTAINER),
                    _template(EntityType.VIRTUAL_MACHINE),
                ]
            )

    def test_rejects_second_root(self):
        with pytest.raises(TopologyError, match="exactly one root"):
            validate_supply_chain(
                [
                    _template(EntityType.SERVICE, EntityType.VIRTUAL_MACHINE),
                    _template(EntityType.CONTAINER, EntityType.VIRTUAL_MACHINE),
                    _template(EntityType.VIRTUAL_MACHINE),
                ]
            )

    def test_rejects_unknown_provider(self):
        with pytest.raises(TopologyError, match="unknown kind"):
            validate_supply_chain([_template(EntityType.CONTAINER, EntityType.CONTAINER_POD)])

    def test_rejects_commodity_not_sold(self):
        with pytest.raises(TopologyError, match="not sold"):
            validate_supply_chain(
                [
                    _template(EntityType.CONTAINER, EntityType.VIRTUAL_MACHINE),
                    _template(EntityType.VIRTUAL_MACHINE, sells=(CommodityType.VMEM,)),
                ]
            )

    def test_rejects_duplicate_kind(self):
        with pytest.raises(TopologyError, match="duplicate"):
            validate_supply_chain([_template(EntityType.VIRTUAL_MACHINE), _template(EntityType.VIRTUAL_MACHINE)])
