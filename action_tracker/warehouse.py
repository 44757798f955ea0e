from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from google.cloud import bigquery

from action_tracker.config import Settings, load_settings


logger = logging.getLogger(__name__)

# BigQuery legacy schema type -> GoogleSQL parameter type.
PARAM_TYPES = {
    "STRING": "STRING",
    "INTEGER": "INT64",
    "INT64": "INT64",
    "FLOAT": "FLOAT64",
    "FLOAT64": "FLOAT64",
    "NUMERIC": "NUMERIC",
    "BIGNUMERIC": "BIGNUMERIC",
    "BOOLEAN": "BOOL",
    "BOOL": "BOOL",
    "DATE": "DATE",
    "DATETIME": "DATETIME",
    "TIMESTAMP": "TIMESTAMP",
    "TIME": "TIME",
}

RESERVED_KEYS = {"id", "row", "actions"}


class NoFieldsToUpdate(ValueError):
    pass


class UnknownColumn(ValueError):
    pass


def _param_type_for(value: Any) -> str:
    if isinstance(value, bool):
        return "BOOL"
    if isinstance(value, int):
        return "INT64"
    if isinstance(value, float):
        return "FLOAT64"
    return "STRING"


def clean_insert_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        k: v
        for k, v in values.items()
        if k not in RESERVED_KEYS and not str(k).upper().startswith("UNNAMED")
    }


class WarehouseClient:
    """Row-level access to the action items table."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.project, self.dataset, self.table = settings.table_parts
        if client is None:
            if settings.credentials_path:
                client = bigquery.Client.from_service_account_json(settings.credentials_path)
            else:
                client = bigquery.Client()
        self.client = client
        self._field_types: Optional[Dict[str, str]] = None

    @property
    def table_ref(self) -> str:
        return f"`{self.project}.{self.dataset}.{self.table}`"

    def _schema(self) -> List[Any]:
        table = self.client.get_table(f"{self.project}.{self.dataset}.{self.table}")
        return list(table.schema or [])

    def field_types(self) -> Dict[str, str]:
        if self._field_types is None:
            self._field_types = {f.name: str(f.field_type).upper() for f in self._schema()}
        return self._field_types

    def _check_columns(self, keys: List[str]) -> None:
        """Only columns present in the table schema may be written."""
        known = self.field_types()
        unknown = [k for k in keys if k not in known]
        if unknown:
            raise UnknownColumn(f"unknown column(s): {', '.join(map(repr, unknown))}")

    def _param(self, name: str, column: Optional[str], value: Any) -> bigquery.ScalarQueryParameter:
        field_type = self.field_types().get(column) if column else None
        param_type = PARAM_TYPES.get(field_type or "", None) or _param_type_for(value)
        if value == "" and param_type != "STRING":
            value = None
        return bigquery.ScalarQueryParameter(name, param_type, value)

    def _run(self, query: str, params: Optional[List[bigquery.ScalarQueryParameter]] = None):
        job_config = bigquery.QueryJobConfig(query_parameters=params or [])
        job = self.client.query(query, job_config=job_config)
        return job.result()

    def fetch_records(self) -> Dict[str, List[Dict[str, Any]]]:
        fields = self._schema()
        self._field_types = {f.name: str(f.field_type).upper() for f in fields}
        columns = [{"key": f.name, "label": str(f.name).upper()} for f in fields]
        result = self._run(f"SELECT * FROM {self.table_ref} LIMIT {int(self.settings.row_limit)}")
        rows = [dict(row.items()) for row in result]
        logger.info("Fetched %d rows from %s.%s.%s", len(rows), self.project, self.dataset, self.table)
        return {"columns": columns, "rows": rows}

    def update_record(self, record_id: Any, updates: Mapping[str, Any]) -> None:
        updates = {k: v for k, v in updates.items() if k != "id"}
        if not updates:
            raise NoFieldsToUpdate("no fields to update")
        keys = list(updates)
        self._check_columns(keys)
        set_clauses = ", ".join(f"`{k}` = @p{i}" for i, k in enumerate(keys))
        params = [self._param(f"p{i}", k, updates[k]) for i, k in enumerate(keys)]
        params.append(self._param("idParam", "id", record_id))
        self._run(f"UPDATE {self.table_ref} SET {set_clauses} WHERE id = @idParam", params)
        logger.info("Updated row id=%s (%d fields)", record_id, len(keys))

    def insert_record(self, values: Mapping[str, Any]) -> None:
        values = clean_insert_values(values)
        if not values:
            raise NoFieldsToUpdate("no fields to insert")
        keys = list(values)
        self._check_columns(keys)
        cols = ", ".join(f"`{k}`" for k in keys)
        placeholders = ", ".join(f"@p{i}" for i in range(len(keys)))
        params = [self._param(f"p{i}", k, values[k]) for i, k in enumerate(keys)]
        self._run(f"INSERT INTO {self.table_ref} ({cols}) VALUES ({placeholders})", params)
        logger.info("Inserted row (%d fields)", len(keys))

    def delete_record(self, record_id: Any) -> None:
        self._run(f"DELETE FROM {self.table_ref} WHERE id = @id", [self._param("id", "id", record_id)])
        logger.info("Deleted row id=%s", record_id)


@lru_cache(maxsize=1)
def get_warehouse_client() -> WarehouseClient:
    settings = load_settings()
    if settings.credentials_path:
        logger.info("GOOGLE_APPLICATION_CREDENTIALS is set (key file detected)")
    else:
        logger.info("No GOOGLE_APPLICATION_CREDENTIALS found. Using Application Default Credentials (ADC).")
    return WarehouseClient(settings)
