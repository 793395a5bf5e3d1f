"""Derive pipeline descriptors from SQL queries.

A SELECT query describes what a pipeline has to move::

    SELECT id, kind, created_at FROM tracking.events WHERE kind IN ('click', 'view')

The codegen package turns the canonical map of such a query
(see :func:`sqlpipe.sql.to_canonical`) and a configuration
into a pipeline descriptor, the template ready description of the pipeline::

    descriptor = build_pipeline(Parser(sql).parse(), {"source_type": "cassandra"})

The :mod:`sqlpipe.codegen.sources` module knows about the types of sources
(files, databases, APIs) and how to connect and track progress on them,
while :mod:`sqlpipe.codegen.pipeline` analyzes the query to extract
columns, conditions and the watermark columns.

Rendering the descriptor into actual code is left to the templates.
"""

from .pipeline import DescriptorError, PipelineDescriptorBuilder, build_pipeline
from .sources import classify

__all__ = ("PipelineDescriptorBuilder", "DescriptorError", "build_pipeline", "classify")
