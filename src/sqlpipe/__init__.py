"""sqlpipe

Compile a restricted SQL dialect into the description of a data movement pipeline.

A query like::

    SELECT id, kind, created_at FROM tracking.events WHERE kind IN ('click', 'view')

says which table to read, which columns to move and which rows to
filter. sqlpipe parses it and derives a pipeline descriptor that
templates can use to generate the code of an incremental pipeline.

The primary components are:

* The SQL compiler (:mod:`sqlpipe.sql`), which tokenizes and parses
  the SQL text into an AST and converts it into a canonical map.
* The code generation support (:mod:`sqlpipe.codegen`), which
  classifies sources and builds the pipeline descriptors.

For the details of each component, refer to the component itself.
"""

from .codegen import DescriptorError, classify
from .codegen import build_pipeline as build_pipeline_descriptor
from .sql import Parser, SQLParseError, SQLTokenizeException, Tokenizer, to_canonical


def tokenize(text: str) -> list:
    """Split a SQL text into tokens."""
    return Tokenizer(text).tokenize()


def parse(text: str):
    """Parse a SQL text, returns a statement or a list of statements."""
    return Parser(text).parse()


def build_pipeline(query, config: dict | None = None) -> dict:
    """Build the pipeline descriptor of a query.

    :param query: The SQL text, its parsed AST or its canonical map.
    :param config: The configuration of the pipeline.
    """
    if isinstance(query, str):
        query = Parser(query).parse()
    return build_pipeline_descriptor(query, config)


__all__ = (
    "tokenize",
    "parse",
    "to_canonical",
    "build_pipeline",
    "classify",
    "Parser",
    "Tokenizer",
    "SQLTokenizeException",
    "SQLParseError",
    "DescriptorError",
)
