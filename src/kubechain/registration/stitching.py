# src/kubechain/registration/stitching.py
"""
Stitching properties used to merge a discovered node with the virtual
machine another probe discovered for the same infrastructure element.
"""

from enum import Enum
from typing import Union

from ..core.exceptions import ConfigurationError
from ..models.commodity import EntityProperty
from ..models.workload import NodeInfo

# Internal matching properties set on node entities
PROXY_VM_UUID = "Proxy_VM_UUID"
PROXY_VM_IP = "Proxy_VM_IP"

# Probe property names, and the attributes of the externally discovered VM they match.
# The IP address name is also the external matching field of merged VMs.
SUPPLY_CHAIN_CONSTANT_UUID = "UUID"
SUPPLY_CHAIN_CONSTANT_IP_ADDRESS = "ipAddress"
VM_UUID_ATTRIBUTE = "UUID"
VM_IP_ATTRIBUTE = "IP"

# External matching fields on the merged VM entity
SUPPLY_CHAIN_CONSTANT_ID = "id"
VM_IP_FIELD_NAME = SUPPLY_CHAIN_CONSTANT_IP_ADDRESS
VM_IP_FIELD_PATHS = ("virtualMachineData",)

IP_DELIMITER = ","


class StitchingPropertyType(str, Enum):
    UUID = "UUID"
    IP = "IP"


def parse_stitching_property_type(value: Union[str, StitchingPropertyType]) -> StitchingPropertyType:
    """Converts a configured value into a StitchingPropertyType."""
    if isinstance(value, StitchingPropertyType):
        return value
    try:
        return StitchingPropertyType(str(value).upper())
    except ValueError:
        raise ConfigurationError(f"stitching property type {value} is not supported") from None


def node_stitching_property(
    node: NodeInfo, property_type: Union[str, StitchingPropertyType]
) -> EntityProperty:
    """Returns the property a node entity carries so that it can be matched by the external probe."""
    property_type = parse_stitching_property_type(property_type)
    if property_type == StitchingPropertyType.UUID:
        # Kubelets report the system UUID in upper case on some providers
        return EntityProperty(name=PROXY_VM_UUID, value=(node.system_uuid or "").lower())
    return EntityProperty(name=PROXY_VM_IP, value=IP_DELIMITER.join(node.addresses))
