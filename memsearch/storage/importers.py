"""Load memorial documents from JSON or YAML files."""

import json
from datetime import date
from pathlib import Path
from typing import Any

import msgspec
import yaml

from memsearch.core.models import MemorialDocument


def _iso_dates(value: Any) -> Any:
    """YAML loads bare dates as date objects; records keep ISO strings."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _iso_dates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_iso_dates(v) for v in value]
    return value


class DocumentImporter:
    """Import memorial records for seeding a document store."""

    def __init__(self, validate: bool = True):
        self.validate = validate

    def import_file(self, path: Path) -> tuple[list[dict[str, Any]], list[str]]:
        """Read records from a file.

        The file holds either a list of records or an object with a
        ``memorials`` list. Invalid records are reported, not raised.

        Returns:
            Tuple of (records, error messages)
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    data = _iso_dates(yaml.safe_load(f))
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            return [], [f"Invalid {path.suffix.lstrip('.').upper()}: {e}"]
        except OSError as e:
            return [], [f"Failed to read file: {e}"]

        if isinstance(data, dict) and "memorials" in data:
            data = data["memorials"]
        if not isinstance(data, list):
            return [], ["Invalid format: expected a list or an object with 'memorials'"]

        return self._import_records(data)

    def _import_records(
        self, data: list[Any]
    ) -> tuple[list[dict[str, Any]], list[str]]:
        records = []
        errors = []

        for i, record in enumerate(data):
            if not isinstance(record, dict):
                errors.append(f"Record {i}: expected an object")
                continue
            if "id" not in record:
                errors.append(f"Record {i}: missing 'id' field")
                continue

            if self.validate:
                try:
                    MemorialDocument.from_record(record)
                except msgspec.ValidationError as e:
                    errors.append(f"Record {record['id']}: {e}")
                    continue

            records.append(record)

        return records, errors
