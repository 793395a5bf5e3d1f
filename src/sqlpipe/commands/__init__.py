"""Shell commands exposing sqlpipe functionalities.

Parse
=====

``sqlpipe-parse`` prints the canonical AST of SQL queries as JSON::

    sqlpipe-parse --pretty "SELECT id, name FROM users WHERE age >= 18"

The output can be stored and later provided to ``sqlpipe-describe --ast``.

Describe
========

``sqlpipe-describe`` prints the pipeline descriptor for a query::

    sqlpipe-describe --source-type postgres --sink-type druid \\
        "SELECT * FROM events.tracking WHERE kind IN ('click', 'view') AND created_at > 0"

By default a human readable summary is printed, ``--json`` prints the whole descriptor.
Multiple pipelines can be described at once with ``--batch pipelines.json``, where the
file contains something like::

    {"pipelines": [
        {"name": "clicks", "sql": "SELECT * FROM clicks", "config": {"source_type": "csv"}},
        {"name": "views", "ast": {"type": "select", "columns": [{"type": "all"}], "from": {"table": "views"}}}
    ]}
"""
