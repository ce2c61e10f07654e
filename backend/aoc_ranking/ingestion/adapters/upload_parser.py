"""
Config-driven parser for uploaded CSV/JSON wine exports.

Uses a YAML alias table to map source columns to canonical record
fields, so new export layouts only need a config change.
"""

import csv
import io
import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ...config import Config
from ...errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).parent / "configs" / "field_aliases.yaml"


class RecordParser:
    """
    CSV/JSON parser configured via YAML.

    Config structure:
    ```yaml
    source_name: upload
    encoding: utf-8

    field_aliases:
      name: name|wine|title
      appellation: appellation|aoc
      base_score: base_score|vivino_rating|rating

    transformations:
      name:
        - strip_whitespace
    ```

    Output records are dicts keyed by canonical field names with the raw
    values left as found; numeric coercion is the normalizer's job.
    """

    # Available transformations
    TRANSFORMATIONS = {
        "strip_whitespace": lambda x: x.strip() if isinstance(x, str) else x,
        "collapse_whitespace": lambda x: re.sub(r'\s+', ' ', x) if isinstance(x, str) else x,
        "title_case": lambda x: x.title() if isinstance(x, str) else x,
    }

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize parser from YAML config.

        Args:
            config_path: Path to YAML config file (defaults to the bundled alias table)
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG

        with open(self.config_path, 'r') as f:
            self.config = yaml.safe_load(f)

        self._validate_config()

    def _validate_config(self):
        """Validate required config fields."""
        if "field_aliases" not in self.config:
            raise ValueError("Missing required config field: field_aliases")

        for field in ("name", "appellation", "base_score"):
            if field not in self.config["field_aliases"]:
                raise ValueError(f"Missing required field alias: {field}")

    def get_source_name(self) -> str:
        """Get source name from config."""
        return self.config.get("source_name", "upload")

    def detect_format(self, filename: Optional[str] = None, fmt: Optional[str] = None) -> str:
        """Explicit format wins, then the file extension, then JSON."""
        if fmt:
            fmt = fmt.strip().lower()
            if fmt not in Config.ALLOWED_IMPORT_FORMATS:
                raise ValidationError(
                    f"Unsupported import format '{fmt}'",
                    detail={"allowed": Config.ALLOWED_IMPORT_FORMATS},
                )
            return fmt
        if filename and filename.lower().endswith(".csv"):
            return "csv"
        return "json"

    def parse(
        self,
        content: Union[bytes, str],
        filename: Optional[str] = None,
        fmt: Optional[str] = None,
    ) -> list[dict]:
        """
        Parse an uploaded payload into raw records.

        Raises:
            ValidationError: payload cannot be decoded or has the wrong shape
        """
        text = self._decode(content)
        if self.detect_format(filename, fmt) == "csv":
            return self.parse_csv(text)
        return self.parse_json(text)

    def parse_csv(self, text: str) -> list[dict]:
        """Parse CSV with a header row."""
        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise ValidationError("CSV payload has no header row")

        records = []
        for row_num, row in enumerate(reader, start=2):  # Start at 2 (header is row 1)
            row = self._normalize_keys(row)
            if not any(v for v in row.values() if isinstance(v, str) and v.strip()):
                continue
            records.append(self._row_to_record(row, row_num))
        return records

    def parse_json(self, text: str) -> list[dict]:
        """Parse a JSON array of objects (or {"wines": [...]})."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON payload: {e.msg} (line {e.lineno})")

        if isinstance(data, dict) and isinstance(data.get("wines"), list):
            data = data["wines"]
        if not isinstance(data, list):
            raise ValidationError("JSON payload must be an array of wine objects")

        records = []
        for index, item in enumerate(data, start=1):
            if not isinstance(item, dict):
                raise ValidationError(
                    f"JSON item {index} is not an object",
                    detail={"row": index},
                )
            records.append(self._row_to_record(self._normalize_keys(item), index))
        return records

    def _row_to_record(self, row: dict, row_num: int) -> dict:
        """Map one source row onto canonical field names."""
        aliases = self.config["field_aliases"]
        transformations = self.config.get("transformations", {})

        record: dict[str, Any] = {"row_number": row_num}
        for field, column_spec in aliases.items():
            value = self._get_value(row, column_spec)
            if value is not None and field in transformations:
                value = self._apply_transforms(value, transformations[field])
            record[field] = value
        return record

    def _get_value(self, row: dict, column_spec: Optional[str]) -> Any:
        """
        Get value from row by column spec.

        Supports:
        - Simple column name: "winery"
        - Fallback: "producer|winery|chateau" (first non-empty wins)
        """
        if not column_spec:
            return None

        if '|' in column_spec:
            for spec in column_spec.split('|'):
                value = self._get_value(row, spec.strip())
                if value is not None:
                    return value
            return None

        value = row.get(column_spec.strip().lower())
        if isinstance(value, str):
            value = value.strip()
            return value if value else None
        return value

    def _apply_transforms(self, value: Any, transforms: list[str]) -> Any:
        """Apply a list of transformations to a value."""
        for transform_name in transforms:
            if transform_name in self.TRANSFORMATIONS:
                value = self.TRANSFORMATIONS[transform_name](value)
        return value

    def _decode(self, content: Union[bytes, str]) -> str:
        if isinstance(content, str):
            return content
        encoding = self.config.get("encoding", "utf-8")
        try:
            # utf-8-sig drops the BOM spreadsheet exports like to add
            return content.decode("utf-8-sig" if encoding.lower() == "utf-8" else encoding)
        except UnicodeDecodeError as e:
            raise ValidationError(f"Payload is not valid {encoding}: {e.reason}")

    @staticmethod
    def _normalize_keys(row: dict) -> dict:
        """Case-insensitive column names."""
        return {str(k).strip().lower(): v for k, v in row.items() if k is not None}
