# src/kubechain/models/supply_chain.py
"""
Declarative supply chain (entity topology) models.

A TemplateDTO describes one entity kind: what it sells to the kinds layered
above it, what it buys from its providers, and how it is stitched with
entities discovered by an independent probe. Every model here is frozen;
templates are built once per process configuration.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .commodity import CommodityType, EntityType


class ProviderType(str, Enum):
    HOSTING = "HOSTING"
    LAYERED_OVER = "LAYERED_OVER"


class TemplateType(str, Enum):
    BASE = "BASE"
    EXTENSION = "EXTENSION"


class MatchingType(str, Enum):
    STRING = "STRING"
    LIST_STRING = "LIST_STRING"


class TemplateCommodity(BaseModel):
    model_config = ConfigDict(frozen=True)

    commodity_type: CommodityType
    key: Optional[str] = None


class ProviderTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: EntityType
    provider_type: ProviderType
    commodities: Tuple[TemplateCommodity, ...] = ()


class ExternalLinkCommodity(BaseModel):
    model_config = ConfigDict(frozen=True)

    commodity_type: CommodityType
    has_key: bool = False


class ProbeEntityPropertyDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str


class ServerEntityPropDef(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity: EntityType
    attribute: str


class ExternalEntityLink(BaseModel):
    """Connects a locally discovered kind to a seller discovered by another probe."""

    model_config = ConfigDict(frozen=True)

    buyer: EntityType
    seller: EntityType
    relationship: ProviderType
    commodities: Tuple[ExternalLinkCommodity, ...] = ()
    probe_entity_property_defs: Tuple[ProbeEntityPropertyDef, ...] = ()
    external_entity_property_defs: Tuple[ServerEntityPropDef, ...] = ()


class MatchingProperty(BaseModel):
    """
    One side of a stitching match.

    The internal side names an entity property (property_name); the external
    side names a field (field_name) reached through field_paths. A delimiter
    is set only for LIST_STRING matching.
    """

    model_config = ConfigDict(frozen=True)

    property_name: Optional[str] = None
    field_name: Optional[str] = None
    field_paths: Tuple[str, ...] = ()
    delimiter: Optional[str] = None


class PatchedField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_name: str
    field_paths: Tuple[str, ...] = ()


class CommoditySoldMetadata(BaseModel):
    """Which commodity fields are reconciled when two fragments of an entity are merged."""

    model_config = ConfigDict(frozen=True)

    commodity_type: CommodityType
    fields: Tuple[str, ...]


class MergedEntityMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    internal_matching_type: MatchingType
    internal_matching: MatchingProperty
    external_matching_type: MatchingType
    external_matching: MatchingProperty
    patched_fields: Tuple[PatchedField, ...] = ()
    commodities_sold_metadata: Tuple[CommoditySoldMetadata, ...] = ()


class TemplateDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    template_class: EntityType
    template_type: TemplateType = TemplateType.BASE
    priority: int = 0
    sells: Tuple[TemplateCommodity, ...] = ()
    buys: Tuple[ProviderTemplate, ...] = ()
    external_links: Tuple[ExternalEntityLink, ...] = ()
    merged_entity_metadata: Optional[MergedEntityMetadata] = None

    def provider_kinds(self) -> List[EntityType]:
        return [p.provider for p in self.buys]

    def buys_from(self, kind: EntityType) -> List[CommodityType]:
        """Commodity types bought from the given provider kind."""
        for provider in self.buys:
            if provider.provider == kind:
                return [c.commodity_type for c in provider.commodities]
        return []

    def sells_types(self) -> List[CommodityType]:
        return [c.commodity_type for c in self.sells]

