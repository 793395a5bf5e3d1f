"""Format tabular data into a text table for print.

The `tabulate` function takes a `pyarrow.RecordBatch` and formats it into a text table.
It will truncate long strings and limit the number of rows to display.
It is used to display the conditions of a pipeline in the ``sqlpipe-describe`` command.

Lists of dictionaries, like the conditions of a pipeline descriptor,
can be converted to a RecordBatch with `records_to_batch`.

Example:

    >>> batch = records_to_batch([
    ...     {"column": "kind", "operator": "IN", "value": ['"click"', '"view"']},
    ...     {"column": "created_at", "operator": ">", "value": 123},
    ... ])
    >>> print(tabulate(batch))
    column     | operator | value
    ---------- | -------- | ---------------
    kind       | IN       | "click", "view"
    created_at | >        | 123
"""

from typing import Any

import pyarrow as pa


def tabulate(recordbatch: pa.RecordBatch, max_rows: int = 20) -> str:
    """Format a RecordBatch into a text table.

    Will produce a string like::

        column     | operator | value
        ---------- | -------- | -----
        created_at | >        | 123
    """
    cols = recordbatch.column_names
    rows = [
        [format_value(row[c]) for c in cols]
        for row in recordbatch.slice(length=max_rows).to_pylist()
    ]

    colsizes = compute_max_colsize(cols, rows)
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if recordbatch.num_rows > max_rows:
        table += f"\n... and {recordbatch.num_rows - max_rows} more rows"
    return table


def records_to_batch(records: list[dict], columns: list[str] | None = None) -> pa.RecordBatch:
    """Convert a list of dictionaries into a RecordBatch of strings.

    Values are converted to text with `format_value` first, so that
    records with values of different types can be part of the same column.

    :param records: The rows, missing keys are empty cells.
    :param columns: The columns to include, by default the keys of all records
                    in order of appearance.
    """
    if columns is None:
        columns = []
        for record in records:
            columns.extend(k for k in record if k not in columns)
    data = {c: [format_value(r.get(c), truncate=False) for r in records] for c in columns}
    return pa.RecordBatch.from_pydict(
        data, schema=pa.schema([(c, pa.string()) for c in columns])
    )


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip()


def format_value(v: Any, truncate: bool = True) -> str:
    """Format a value to be printed in the table.

    Lists are joined by commas, missing values are empty
    and long strings are truncated.
    """
    if v is None:
        return ""
    elif isinstance(v, bool):
        return "true" if v else "false"
    elif isinstance(v, (list, tuple)):
        v = ", ".join(format_value(i, truncate=False) for i in v)

    v = str(v)
    if truncate and len(v) > 40:
        v = v[:37] + "..."
    return v
