"""Record connectors.

Connectors supply the two record sets of a run. The engine itself never
talks to them; :mod:`trustmatch.engine.service` fetches the records and
hands complete lists to the orchestrator.
"""

from trustmatch.connectors.base import (
    ConnectionState,
    Connector,
    ConnectorRegistry,
    fetch_records,
)
from trustmatch.connectors.filters import (
    FilterCondition,
    FilterOperator,
    QueryFilter,
    SortDirection,
    SortKey,
    apply_filter,
    count_matching,
)
from trustmatch.connectors.json_file import JsonFileConnector, load_json_records
from trustmatch.connectors.memory import InMemoryConnector

__all__ = [
    "ConnectionState",
    "Connector",
    "ConnectorRegistry",
    "fetch_records",
    "FilterCondition",
    "FilterOperator",
    "QueryFilter",
    "SortDirection",
    "SortKey",
    "apply_filter",
    "count_matching",
    "InMemoryConnector",
    "JsonFileConnector",
    "load_json_records",
]
