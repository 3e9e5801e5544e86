"""
ResultMaterializer: series, tabular pages and table materialization.
"""

import logging
import re
from typing import List, Optional, Tuple, Union

from ...backends.protocols import TableLocation, TableStore
from ...exceptions.query_exceptions import MaterializationError, TableLocationError
from ...models.query_schema import CacheMode, MqlQueryResultSeries, QuerySpecification
from ...utils.config import ConfigManager
from ..cache_store.types import CachedResult
from ..query_manager import QueryManager
from .series import to_series
from .tabular import to_tabular
from .types import MaterializationResult, TabularOrient, TabularPage

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_table_location(as_table: str, default_schema: str) -> TableLocation:
    """
    Parse ``schema.table`` or ``table``.

    Raises:
        TableLocationError: If a part is not a plain identifier
    """
    if not isinstance(as_table, str) or not as_table.strip():
        raise TableLocationError("Table name must be a non-empty string")

    parts = as_table.strip().split(".")
    if len(parts) == 1:
        schema, table = default_schema, parts[0]
    elif len(parts) == 2:
        schema, table = parts
    else:
        raise TableLocationError(
            f"Invalid table name '{as_table}'",
            {"as_table": as_table},
            ["Use 'table' or 'schema.table'"]
        )

    for part in (schema, table):
        if not _IDENTIFIER.match(part):
            raise TableLocationError(
                f"Invalid identifier '{part}' in table name '{as_table}'",
                {"as_table": as_table},
                ["Identifiers start with a letter or underscore and contain only letters, digits and underscores"]
            )
    return TableLocation(schema=schema, table=table)


class ResultMaterializer:
    """Exposes query results as series, tabular pages or written tables."""

    def __init__(
        self,
        query_manager: QueryManager,
        table_store: Optional[TableStore] = None,
        config_manager: Optional[ConfigManager] = None,
    ):
        self.query_manager = query_manager
        self.table_store = table_store
        self.config_manager = config_manager or query_manager.config_manager
        self.page_size = int(self.config_manager.get("materializer.page_size", 1000))
        self.default_schema = self.config_manager.get("materializer.default_schema", "mql")
        self.wait_timeout_seconds = float(self.config_manager.get("materializer.wait_timeout_seconds", 600))
        self.logger = logger

    def to_series(self, raw_result: CachedResult, metric: Optional[str] = None) -> List[MqlQueryResultSeries]:
        return to_series(raw_result, metric=metric)

    def to_tabular(
        self,
        query_id: str,
        cursor: Optional[str] = None,
        orient: Union[TabularOrient, str] = TabularOrient.RECORDS,
    ) -> TabularPage:
        frame = self.query_manager.result_frame(query_id)
        return to_tabular(frame, query_id, cursor=cursor, orient=orient, page_size=self.page_size)

    def materialize(
        self,
        spec: QuerySpecification,
        as_table: str,
        cache_mode: Union[CacheMode, str] = CacheMode.READWRITE,
    ) -> MaterializationResult:
        """
        Run ``spec`` to completion and write its result to ``as_table``.

        Raises:
            TableLocationError: If ``as_table`` is not a valid table name
            MaterializationError: If no table store is configured or the
                query does not finish in time
            QueryFailedError: If the query fails
            TableStoreError: If the table store rejects the write
        """
        location = parse_table_location(as_table, self.default_schema)
        if self.table_store is None:
            raise MaterializationError(
                "No table store is configured",
                suggestions=["Pass a TableStore to the service to enable materialization"]
            )

        query_id = self.query_manager.submit(spec.with_cache_mode(CacheMode.parse(cache_mode)))
        status, frame = self._await(query_id)

        self.table_store.write_table(location, frame)
        self.logger.info(f"Query {query_id} materialized into {location} ({len(frame)} rows, {status.value})")
        return MaterializationResult(
            schema=location.schema,
            table=location.table,
            query_id=query_id,
            row_count=len(frame),
        )

    def _await(self, query_id: str) -> Tuple:
        status = self.query_manager.wait(query_id, timeout=self.wait_timeout_seconds)
        if not status.is_terminal:
            raise MaterializationError(
                f"Query '{query_id}' did not finish within {self.wait_timeout_seconds:g}s",
                {"query_id": query_id, "status": status.value},
                ["Raise materializer.wait_timeout_seconds or poll the query and retry"]
            )
        return status, self.query_manager.result_frame(query_id)
