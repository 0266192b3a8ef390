"""Turn an uploaded CSV file into header-keyed rows.

Convention: the first row is the header; data starts on line 2.
"""
import csv
import io

from app.core.exceptions import InputError


def parse_csv(content: bytes) -> list[dict[str, str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise InputError("CSV must be UTF-8 encoded") from exc

    reader = csv.reader(io.StringIO(text))
    header: list[str] | None = None
    rows: list[dict[str, str]] = []
    for record in reader:
        if not any(cell.strip() for cell in record):
            continue
        if header is None:
            header = [cell.strip() for cell in record]
            continue
        row: dict[str, str] = {}
        for i, name in enumerate(header):
            # columns without a header are dropped; the first of a repeated header wins
            if name and name not in row:
                row[name] = record[i] if i < len(record) else ""
        rows.append(row)
    return rows
