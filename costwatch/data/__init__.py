"""
Data module: cost record schema, ingestion, normalization.

Pipeline:

    Exported cost records (CSV/JSON)
        ↓
    Ingestion (costwatch/data/ingestion.py)
        ↓
    Normalization (costwatch/data/normalizers.py) → CostRecord
        ↓
    Context building (costwatch/data/context.py) → CheckContext
        ↓
    Anomaly detection (costwatch/anomaly)

The context builder depends on the anomaly schema and is imported from
costwatch.data.context directly.
"""

from costwatch.data.ingestion import (
    CSVCostRecordSource,
    IngestionError,
    JSONCostRecordSource,
    ingest_cost_records,
)
from costwatch.data.normalizers import (
    NormalizationError,
    normalize_amount,
    normalize_cost_record,
    normalize_cost_records,
    normalize_cost_type,
    normalize_date,
)
from costwatch.data.schema import CostRecord, CostType

__all__ = [
    # Schema
    "CostRecord",
    "CostType",

    # Ingestion
    "ingest_cost_records",
    "JSONCostRecordSource",
    "CSVCostRecordSource",
    "IngestionError",

    # Normalization
    "normalize_cost_record",
    "normalize_cost_records",
    "normalize_amount",
    "normalize_cost_type",
    "normalize_date",
    "NormalizationError",
]
