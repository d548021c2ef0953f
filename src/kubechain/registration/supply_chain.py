# src/kubechain/registration/supply_chain.py
"""
Builds the supply chain: one TemplateDTO per discovered entity kind with
the commodities it sells and buys, the external links used to attach pods
and quotas to nodes discovered by another probe, and the metadata that
drives merging of the two node fragments.

The resulting graph is rooted at SERVICE and terminates at VIRTUAL_MACHINE.
Provider edges (buyer -> seller):

    SERVICE -> APPLICATION_COMPONENT -> CONTAINER -> CONTAINER_POD -> VIRTUAL_MACHINE
    CONTAINER -> CONTAINER_SPEC -> VIRTUAL_DATACENTER -> VIRTUAL_MACHINE
    CONTAINER_POD -> VIRTUAL_DATACENTER
"""

import logging
from collections import defaultdict
from typing import Dict, List, Union

from ..core.exceptions import ConfigurationError, TopologyError
from ..models.commodity import CommodityType, EntityType
from ..models.supply_chain import (
    CommoditySoldMetadata,
    ExternalEntityLink,
    ExternalLinkCommodity,
    MatchingProperty,
    MatchingType,
    MergedEntityMetadata,
    PatchedField,
    ProbeEntityPropertyDef,
    ProviderTemplate,
    ProviderType,
    ServerEntityPropDef,
    TemplateCommodity,
    TemplateDTO,
    TemplateType,
)
from .stitching import (
    IP_DELIMITER,
    PROXY_VM_IP,
    PROXY_VM_UUID,
    SUPPLY_CHAIN_CONSTANT_ID,
    SUPPLY_CHAIN_CONSTANT_IP_ADDRESS,
    SUPPLY_CHAIN_CONSTANT_UUID,
    VM_IP_ATTRIBUTE,
    VM_IP_FIELD_NAME,
    VM_IP_FIELD_PATHS,
    VM_UUID_ATTRIBUTE,
    StitchingPropertyType,
    parse_stitching_property_type,
)

logger = logging.getLogger(__name__)

# Keyed commodities are matched by key between buyer and seller; the key
# itself is assigned per entity at discovery time.
FAKE_KEY = "fake"

ACTION_ELIGIBILITY_FIELD = "actionEligibility"

PROPERTY_USED = "used"
PROPERTY_CAPACITY = "capacity"
PROPERTY_PEAK = "peak"
PROPERTY_RESIZABLE = "resizable"

FIELDS_CAPACITY = (PROPERTY_CAPACITY,)
FIELDS_USED_CAPACITY = (PROPERTY_USED, PROPERTY_CAPACITY)
FIELDS_USED_CAPACITY_PEAK = (PROPERTY_USED, PROPERTY_CAPACITY, PROPERTY_PEAK, PROPERTY_RESIZABLE)

VCPU = TemplateCommodity(commodity_type=CommodityType.VCPU)
VMEM = TemplateCommodity(commodity_type=CommodityType.VMEM)
VCPU_REQUEST = TemplateCommodity(commodity_type=CommodityType.VCPU_REQUEST)
VMEM_REQUEST = TemplateCommodity(commodity_type=CommodityType.VMEM_REQUEST)
NUMBER_CONSUMERS = TemplateCommodity(commodity_type=CommodityType.NUMBER_CONSUMERS)
VSTORAGE = TemplateCommodity(commodity_type=CommodityType.VSTORAGE)
VMPM_ACCESS_WITH_KEY = TemplateCommodity(commodity_type=CommodityType.VMPM_ACCESS, key=FAKE_KEY)
APPLICATION_WITH_KEY = TemplateCommodity(commodity_type=CommodityType.APPLICATION, key=FAKE_KEY)
CPU_LIMIT_QUOTA_WITH_KEY = TemplateCommodity(commodity_type=CommodityType.VCPU_LIMIT_QUOTA, key=FAKE_KEY)
MEM_LIMIT_QUOTA_WITH_KEY = TemplateCommodity(commodity_type=CommodityType.VMEM_LIMIT_QUOTA, key=FAKE_KEY)
CPU_REQUEST_QUOTA_WITH_KEY = TemplateCommodity(commodity_type=CommodityType.VCPU_REQUEST_QUOTA, key=FAKE_KEY)
MEM_REQUEST_QUOTA_WITH_KEY = TemplateCommodity(commodity_type=CommodityType.VMEM_REQUEST_QUOTA, key=FAKE_KEY)

QUOTA_COMMODITIES = (
    CPU_LIMIT_QUOTA_WITH_KEY,
    MEM_LIMIT_QUOTA_WITH_KEY,
    CPU_REQUEST_QUOTA_WITH_KEY,
    MEM_REQUEST_QUOTA_WITH_KEY,
)
# Commodities a container spec sells: one per aggregated resource type
CONTAINER_SPEC_COMMODITIES = (VCPU, VMEM, VCPU_REQUEST, VMEM_REQUEST)


def _link_commodities(*pairs) -> tuple:
    return tuple(ExternalLinkCommodity(commodity_type=t, has_key=k) for t, k in pairs)


class SupplyChainFactory:
    """Creates the supply chain templates for a given stitching property type."""

    def __init__(
        self,
        stitching_property_type: Union[str, StitchingPropertyType],
        vm_priority: int = -1,
        base: bool = False,
    ):
        # Parsed in create_supply_chain()
        self.stitching_property_type = stitching_property_type
        self.vm_priority = vm_priority
        self.vm_template_type = TemplateType.BASE if base else TemplateType.EXTENSION

    def create_supply_chain(self) -> List[TemplateDTO]:
        """
        Builds every template, leaves first, and returns them top-down.

        Raises:
            ConfigurationError: If the stitching property type is not supported.
            TopologyError: If the templates do not form a single rooted acyclic graph.
        """
        node = self._build_node_template()
        quota = self._build_quota_template()
        pod = self._build_pod_template()
        container_spec = self._build_container_spec_template()
        container = self._build_container_template()
        application = self._build_application_template()
        service = self._build_service_template()

        templates = [service, application, container, container_spec, pod, quota, node]
        for template in templates:
            logger.debug("Supply chain node: %s", template)

        validate_supply_chain(templates)
        return templates

    def _stitching_type(self) -> StitchingPropertyType:
        return parse_stitching_property_type(self.stitching_property_type)

    def build_node_merged_entity_metadata(self) -> MergedEntityMetadata:
        """Stitching metadata used to merge a node with the VM discovered by the infrastructure probe."""
        stitching_type = self._stitching_type()
        if stitching_type == StitchingPropertyType.UUID:
            internal_type = external_type = MatchingType.STRING
            internal = MatchingProperty(property_name=PROXY_VM_UUID)
            external = MatchingProperty(field_name=SUPPLY_CHAIN_CONSTANT_ID)
        elif stitching_type == StitchingPropertyType.IP:
            internal_type = external_type = MatchingType.LIST_STRING
            internal = MatchingProperty(property_name=PROXY_VM_IP, delimiter=IP_DELIMITER)
            external = MatchingProperty(
                field_name=VM_IP_FIELD_NAME,
                field_paths=VM_IP_FIELD_PATHS,
                delimiter=IP_DELIMITER,
            )
        else:
            raise ConfigurationError(f"stitching property type {self.stitching_property_type} is not supported")

        sold_fields = (
            (CommodityType.CLUSTER, FIELDS_CAPACITY),
            (CommodityType.VMPM_ACCESS, FIELDS_CAPACITY),
            (CommodityType.VCPU, FIELDS_USED_CAPACITY_PEAK),
            (CommodityType.VMEM, FIELDS_USED_CAPACITY_PEAK),
            (CommodityType.VCPU_REQUEST, FIELDS_USED_CAPACITY),
            (CommodityType.VMEM_REQUEST, FIELDS_USED_CAPACITY),
            (CommodityType.VCPU_LIMIT_QUOTA, FIELDS_USED_CAPACITY),
            (CommodityType.VMEM_LIMIT_QUOTA, FIELDS_USED_CAPACITY),
            (CommodityType.VCPU_REQUEST_QUOTA, FIELDS_USED_CAPACITY),
            (CommodityType.VMEM_REQUEST_QUOTA, FIELDS_USED_CAPACITY),
            (CommodityType.NUMBER_CONSUMERS, FIELDS_USED_CAPACITY),
            (CommodityType.VSTORAGE, FIELDS_USED_CAPACITY),
        )
        return MergedEntityMetadata(
            internal_matching_type=internal_type,
            internal_matching=internal,
            external_matching_type=external_type,
            external_matching=external,
            patched_fields=(PatchedField(field_name=ACTION_ELIGIBILITY_FIELD),),
            commodities_sold_metadata=tuple(
                CommoditySoldMetadata(commodity_type=t, fields=f) for t, f in sold_fields
            ),
        )

    def _vm_stitching_property_defs(self):
        stitching_type = self._stitching_type()
        if stitching_type == StitchingPropertyType.UUID:
            probe = ProbeEntityPropertyDef(name=SUPPLY_CHAIN_CONSTANT_UUID, description="UUID of the Node")
            server = ServerEntityPropDef(entity=EntityType.VIRTUAL_MACHINE, attribute=VM_UUID_ATTRIBUTE)
        elif stitching_type == StitchingPropertyType.IP:
            probe = ProbeEntityPropertyDef(name=SUPPLY_CHAIN_CONSTANT_IP_ADDRESS, description="IP of the Node")
            server = ServerEntityPropDef(entity=EntityType.VIRTUAL_MACHINE, attribute=VM_IP_ATTRIBUTE)
        else:
            raise ConfigurationError(f"stitching property type {self.stitching_property_type} is not supported")
        return (probe,), (server,)

    def _build_node_template(self) -> TemplateDTO:
        return TemplateDTO(
            template_class=EntityType.VIRTUAL_MACHINE,
            template_type=self.vm_template_type,
            priority=self.vm_priority,
            # VCPU..VSTORAGE are sold to pods, the quota commodities to quotas
            sells=(
                VCPU,
                VMEM,
                VCPU_REQUEST,
                VMEM_REQUEST,
                VMPM_ACCESS_WITH_KEY,
                NUMBER_CONSUMERS,
                VSTORAGE,
            )
            + QUOTA_COMMODITIES,
            merged_entity_metadata=self.build_node_merged_entity_metadata(),
        )

    def _build_quota_template(self) -> TemplateDTO:
        probe_defs, server_defs = self._vm_stitching_property_defs()
        vm_quota_link = ExternalEntityLink(
            buyer=EntityType.VIRTUAL_DATACENTER,
            seller=EntityType.VIRTUAL_MACHINE,
            relationship=ProviderType.LAYERED_OVER,
            commodities=_link_commodities(
                (CommodityType.VCPU_LIMIT_QUOTA, True),
                (CommodityType.VMEM_LIMIT_QUOTA, True),
                (CommodityType.VCPU_REQUEST_QUOTA, True),
                (CommodityType.VMEM_REQUEST_QUOTA, True),
            ),
            probe_entity_property_defs=probe_defs,
            external_entity_property_defs=server_defs,
        )
        return TemplateDTO(
            template_class=EntityType.VIRTUAL_DATACENTER,
            sells=QUOTA_COMMODITIES,
            buys=(
                ProviderTemplate(
                    provider=EntityType.VIRTUAL_MACHINE,
                    provider_type=ProviderType.LAYERED_OVER,
                    commodities=QUOTA_COMMODITIES,
                ),
            ),
            external_links=(vm_quota_link,),
        )

    def _build_pod_template(self) -> TemplateDTO:
        probe_defs, server_defs = self._vm_stitching_property_defs()
        vm_pod_link = ExternalEntityLink(
            buyer=EntityType.CONTAINER_POD,
            seller=EntityType.VIRTUAL_MACHINE,
            relationship=ProviderType.HOSTING,
            commodities=_link_commodities(
                (CommodityType.VCPU, False),
                (CommodityType.VMEM, False),
                (CommodityType.VCPU_REQUEST, False),
                (CommodityType.VMEM_REQUEST, False),
                (CommodityType.NUMBER_CONSUMERS, False),
                (CommodityType.VMPM_ACCESS, True),
                (CommodityType.CLUSTER, True),
            ),
            probe_entity_property_defs=probe_defs,
            external_entity_property_defs=server_defs,
        )
        return TemplateDTO(
            template_class=EntityType.CONTAINER_POD,
            sells=(VCPU, VMEM, VMPM_ACCESS_WITH_KEY),
            buys=(
                ProviderTemplate(
                    provider=EntityType.VIRTUAL_MACHINE,
                    provider_type=ProviderType.HOSTING,
                    commodities=(VCPU, VMEM, VCPU_REQUEST, VMEM_REQUEST, NUMBER_CONSUMERS, VSTORAGE),
                ),
                ProviderTemplate(
                    provider=EntityType.VIRTUAL_DATACENTER,
                    provider_type=ProviderType.LAYERED_OVER,
                    commodities=QUOTA_COMMODITIES,
                ),
            ),
            external_links=(vm_pod_link,),
        )

    def _build_container_spec_template(self) -> TemplateDTO:
        return TemplateDTO(
            template_class=EntityType.CONTAINER_SPEC,
            sells=CONTAINER_SPEC_COMMODITIES,
            buys=(
                ProviderTemplate(
                    provider=EntityType.VIRTUAL_DATACENTER,
                    provider_type=ProviderType.LAYERED_OVER,
                    commodities=QUOTA_COMMODITIES,
                ),
            ),
        )

    def _build_container_template(self) -> TemplateDTO:
        return TemplateDTO(
            template_class=EntityType.CONTAINER,
            sells=(VCPU, VMEM, APPLICATION_WITH_KEY),
            buys=(
                ProviderTemplate(
                    provider=EntityType.CONTAINER_POD,
                    provider_type=ProviderType.HOSTING,
                    commodities=(VCPU, VMEM, VMPM_ACCESS_WITH_KEY),
                ),
                ProviderTemplate(
                    provider=EntityType.CONTAINER_SPEC,
                    provider_type=ProviderType.LAYERED_OVER,
                    commodities=CONTAINER_SPEC_COMMODITIES,
                ),
            ),
        )

    def _build_application_template(self) -> TemplateDTO:
        return TemplateDTO(
            template_class=EntityType.APPLICATION_COMPONENT,
            # The key is used to sell to the services
            sells=(APPLICATION_WITH_KEY,),
            buys=(
                ProviderTemplate(
                    provider=EntityType.CONTAINER,
                    provider_type=ProviderType.HOSTING,
                    commodities=(VCPU, VMEM, APPLICATION_WITH_KEY),
                ),
            ),
        )

    def _build_service_template(self) -> TemplateDTO:
        return TemplateDTO(
            template_class=EntityType.SERVICE,
            buys=(
                ProviderTemplate(
                    provider=EntityType.APPLICATION_COMPONENT,
                    provider_type=ProviderType.LAYERED_OVER,
                    commodities=(APPLICATION_WITH_KEY,),
                ),
            ),
        )


def validate_supply_chain(templates: List[TemplateDTO]):
    """
    Checks that the templates form one connected acyclic graph with a single
    root (no consumers) and a single terminal kind (no providers), and that
    every bought commodity is sold by its provider.

    Raises:
        TopologyError: On the first violation found.
    """
    by_kind: Dict[EntityType, TemplateDTO] = {}
    for template in templates:
        if template.template_class in by_kind:
            raise TopologyError(f"duplicate template for {template.template_class.value}")
        by_kind[template.template_class] = template

    consumers: Dict[EntityType, List[EntityType]] = defaultdict(list)
    for template in templates:
        for provider in template.buys:
            seller = by_kind.get(provider.provider)
            if seller is None:
                raise TopologyError(
                    f"{template.template_class.value} buys from unknown kind {provider.provider.value}"
                )
            missing = {c.commodity_type for c in provider.commodities} - set(seller.sells_types())
            if missing:
                raise TopologyError(
                    f"{template.template_class.value} buys {sorted(m.value for m in missing)} "
                    f"not sold by {provider.provider.value}"
                )
            consumers[provider.provider].append(template.template_class)

    roots = [kind for kind in by_kind if not consumers[kind]]
    terminals = [kind for kind, t in by_kind.items() if not t.buys]
    if len(roots) != 1:
        raise TopologyError(f"supply chain must have exactly one root, found {[r.value for r in roots]}")
    if len(terminals) != 1:
        raise TopologyError(
            f"supply chain must have exactly one terminal kind, found {[t.value for t in terminals]}"
        )

    # Depth-first walk from the root: detects cycles and unreachable kinds.
    visiting, done = set(), set()

    def visit(kind: EntityType):
        if kind in done:
            return
        if kind in visiting:
            raise TopologyError(f"supply chain contains a cycle through {kind.value}")
        visiting.add(kind)
        for provider in by_kind[kind].provider_kinds():
            visit(provider)
        visiting.discard(kind)
        done.add(kind)

    visit(roots[0])
    orphaned = set(by_kind) - done
    if orphaned:
        raise TopologyError(f"supply chain has orphaned kinds {sorted(k.value for k in orphaned)}")
