# src/kubechain/discovery/aggregation.py
"""
Aggregation of per-replica commodities into one controller-level view.

Two families of strategies are provided:

- utilization data strategies turn the raw commodities into a series of
  utilization percentages (the time-series payload of a commodity);
- usage data strategies reduce the raw commodities to a single
  capacity/used/peak triple.

Strategies are pure functions selected through a closed enum; the engine
receives its strategies at construction time.
"""

from enum import Enum
from types import MappingProxyType
from typing import Callable, List, Mapping, Sequence, Union

from ..core.exceptions import AggregationError, ConfigurationError
from ..models.commodity import CommodityDTO, UsageData, UtilizationData


class UtilizationDataStrategy(str, Enum):
    ALL = "allUtilizationData"
    MAX = "maxUtilizationData"


class UsageDataStrategy(str, Enum):
    AVG = "avgUsageData"
    MAX = "maxUsageData"


DEFAULT_UTILIZATION_DATA_STRATEGY = UtilizationDataStrategy.ALL
DEFAULT_USAGE_DATA_STRATEGY = UsageDataStrategy.AVG

_DESCRIPTIONS = {
    UtilizationDataStrategy.ALL: "all utilization data strategy",
    UtilizationDataStrategy.MAX: "max utilization data strategy",
    UsageDataStrategy.AVG: "average usage data strategy",
    UsageDataStrategy.MAX: "max usage data strategy",
}


def _check_commodities(commodities: Sequence[CommodityDTO], strategy: Enum):
    if not commodities:
        raise AggregationError(
            f"error to aggregate commodities using {_DESCRIPTIONS[strategy]}: commodities list is empty"
        )
    for commodity in commodities:
        if commodity.capacity == 0.0:
            raise AggregationError(
                f"error to aggregate {commodity.commodity_type.value} commodities using "
                f"{_DESCRIPTIONS[strategy]}: capacity is 0"
            )


def _utilizations(commodities: Sequence[CommodityDTO]) -> List[float]:
    return [c.used / c.capacity * 100 for c in commodities]


def _all_utilization_data(commodities: Sequence[CommodityDTO], last_point_timestamp_ms: int) -> UtilizationData:
    _check_commodities(commodities, UtilizationDataStrategy.ALL)
    # One point per replica observation; the cadence is irregular so no interval is reported.
    return UtilizationData(points=_utilizations(commodities), last_point_timestamp_ms=last_point_timestamp_ms)


def _max_utilization_data(commodities: Sequence[CommodityDTO], last_point_timestamp_ms: int) -> UtilizationData:
    _check_commodities(commodities, UtilizationDataStrategy.MAX)
    return UtilizationData(points=[max(_utilizations(commodities))], last_point_timestamp_ms=last_point_timestamp_ms)


def _avg_usage_data(commodities: Sequence[CommodityDTO]) -> UsageData:
    _check_commodities(commodities, UsageDataStrategy.AVG)
    return UsageData(
        capacity=max(c.capacity for c in commodities),
        used=sum(c.used for c in commodities) / len(commodities),
        peak=max(c.peak for c in commodities),
    )


def _max_usage_data(commodities: Sequence[CommodityDTO]) -> UsageData:
    _check_commodities(commodities, UsageDataStrategy.MAX)
    return UsageData(
        capacity=max(c.capacity for c in commodities),
        used=max(c.used for c in commodities),
        peak=max(c.peak for c in commodities),
    )


UTILIZATION_DATA_AGGREGATORS: Mapping[UtilizationDataStrategy, Callable[..., UtilizationData]] = MappingProxyType(
    {
        UtilizationDataStrategy.ALL: _all_utilization_data,
        UtilizationDataStrategy.MAX: _max_utilization_data,
    }
)

USAGE_DATA_AGGREGATORS: Mapping[UsageDataStrategy, Callable[..., UsageData]] = MappingProxyType(
    {
        UsageDataStrategy.AVG: _avg_usage_data,
        UsageDataStrategy.MAX: _max_usage_data,
    }
)


def _parse_strategy(strategy_enum, value):
    try:
        return strategy_enum(value)
    except ValueError:
        raise ConfigurationError(
            f"unsupported aggregation strategy '{value}', expected one of {[s.value for s in strategy_enum]}"
        ) from None


def aggregate_utilization_data(
    strategy: Union[str, UtilizationDataStrategy],
    commodities: Sequence[CommodityDTO],
    last_point_timestamp_ms: int,
) -> UtilizationData:
    """
    Aggregates the utilization of a list of commodities of one type.

    Raises:
        AggregationError: If the list is empty or a commodity has zero capacity.
        ConfigurationError: If the strategy is unknown.
    """
    aggregator = UTILIZATION_DATA_AGGREGATORS[_parse_strategy(UtilizationDataStrategy, strategy)]
    return aggregator(commodities, last_point_timestamp_ms)


def aggregate_usage_data(strategy: Union[str, UsageDataStrategy], commodities: Sequence[CommodityDTO]) -> UsageData:
    """
    Reduces a list of commodities of one type to capacity, used and peak values.

    Raises:
        AggregationError: If the list is empty or a commodity has zero capacity.
        ConfigurationError: If the strategy is unknown.
    """
    return USAGE_DATA_AGGREGATORS[_parse_strategy(UsageDataStrategy, strategy)](commodities)


class AggregationEngine:
    """Aggregates container commodities with the strategies chosen at construction."""

    def __init__(
        self,
        utilization_strategy: Union[str, UtilizationDataStrategy] = DEFAULT_UTILIZATION_DATA_STRATEGY,
        usage_strategy: Union[str, UsageDataStrategy] = DEFAULT_USAGE_DATA_STRATEGY,
    ):
        self.utilization_strategy = _parse_strategy(UtilizationDataStrategy, utilization_strategy)
        self.usage_strategy = _parse_strategy(UsageDataStrategy, usage_strategy)

    def aggregate_utilization(
        self, commodities: Sequence[CommodityDTO], last_point_timestamp_ms: int
    ) -> UtilizationData:
        return aggregate_utilization_data(self.utilization_strategy, commodities, last_point_timestamp_ms)

    def aggregate_usage(self, commodities: Sequence[CommodityDTO]) -> UsageData:
        return aggregate_usage_data(self.usage_strategy, commodities)
