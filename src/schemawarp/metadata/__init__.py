"""Column type inference using sampling heuristics"""
from .inference import ColumnType, infer_value_type, infer_column_type, coerce_value, DEFAULT_SAMPLE_SIZE
