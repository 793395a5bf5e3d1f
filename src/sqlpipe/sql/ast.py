"""The nodes of the Abstract Syntax Tree produced by the parser.

Parsing ``"SELECT id, name FROM users WHERE age >= 18"`` produces a tree like::

    Select(
        columns=(ColumnRef(name='id'), ColumnRef(name='name')),
        from_=TableRef(name='users'),
        where=BinaryOp(
            left=ColumnRef(name='age'),
            operator='>=',
            right=Literal(value='18', kind='NUMBER'),
        ),
    )

The tree is strictly hierarchical: each node owns its children,
children are never shared between two parents and there are no cycles.

Nodes are immutable, once created their fields can't be reassigned
and lists of children are stored as tuples. This allows to pass
a parsed tree around without worrying that someone could change it.

The set of node classes is closed: :data:`NODE_TYPES` lists all of them
and every consumer of the tree, like the :mod:`sqlpipe.sql.serializer`,
is expected to handle each one of them.
"""

import abc
from typing import Any


class Node(abc.ABC):
    """Base class for all the nodes of the AST.

    Subclasses declare their fields in ``_fields``, that
    is used to provide equality, representation and iteration
    over the children of the node.
    """

    _fields: tuple[str, ...] = ()

    def __init__(self, **values: Any) -> None:
        for name in self._fields:
            value = values.get(name)
            if isinstance(value, list):
                value = tuple(value)
            object.__setattr__(self, name, value)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{self.__class__.__name__} nodes are immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.__class__ is other.__class__ and all(
            getattr(self, f) == getattr(other, f) for f in self._fields
        )

    def __hash__(self) -> int:
        return hash((self.__class__,) + tuple(getattr(self, f) for f in self._fields))

    def __repr__(self) -> str:
        fields = ", ".join(
            f"{name}={value!r}"
            for name, value in ((n, getattr(self, n)) for n in self._fields)
            if value is not None and value is not False and value != ()
        )
        return f"{self.__class__.__name__}({fields})"

    def children(self) -> list["Node"]:
        """The nodes directly owned by this node, in field order."""
        found = []
        for name in self._fields:
            value = getattr(self, name)
            values = value if isinstance(value, tuple) else (value,)
            for item in values:
                if isinstance(item, Node):
                    found.append(item)
                elif isinstance(item, tuple):
                    found.extend(i for i in item if isinstance(i, Node))
        return found


class Statement(Node):
    """A whole SQL statement."""


class Expression(Node):
    """Something that can be evaluated to a value."""


class TableRef(Node):
    """Reference to a table, like ``events.tracking AS t``."""

    _fields = ("name", "schema", "alias")

    def __init__(
        self, name: str, schema: str | None = None, alias: str | None = None
    ) -> None:
        """
        :param name: The table name.
        :param schema: The schema (or keyspace) qualifying the table, if any.
        :param alias: The alias the table was given in the query, if any.
        """
        super().__init__(name=name, schema=schema, alias=alias)

    @property
    def full_name(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


class ColumnRef(Expression):
    """Reference to a column, possibly qualified by a table.

    The name is ``*`` for wildcards, like in ``SELECT *``, ``t.*``
    or ``COUNT(*)``.
    """

    _fields = ("name", "table", "alias")

    def __init__(
        self, name: str, table: str | None = None, alias: str | None = None
    ) -> None:
        super().__init__(name=name, table=table, alias=alias)

    @property
    def is_wildcard(self) -> bool:
        return self.name == "*"

    @property
    def full_name(self) -> str:
        return f"{self.table}.{self.name}" if self.table else self.name


class Literal(Expression):
    """A constant value.

    The value is kept as it appeared in the text, so that
    it's up to the consumer to decide how to interpret numbers.

    :param value: The text of the literal, ``None`` for NULL.
    :param kind: One of ``NUMBER``, ``STRING`` or ``NULL``.
    """

    KINDS = ("NUMBER", "STRING", "NULL")

    _fields = ("value", "kind")

    def __init__(self, value: str | None, kind: str) -> None:
        if kind not in self.KINDS:
            raise ValueError(f"Unsupported literal kind: {kind}")
        super().__init__(value=value, kind=kind)


class BinaryOp(Expression):
    """An operator applied to two operands: arithmetic, comparison, AND, OR."""

    _fields = ("left", "operator", "right")

    def __init__(self, left: Expression, operator: str, right: Expression) -> None:
        super().__init__(left=left, operator=operator, right=right)


class UnaryOp(Expression):
    """``NOT x`` or ``-x``"""

    _fields = ("operator", "operand")

    def __init__(self, operator: str, operand: Expression) -> None:
        super().__init__(operator=operator, operand=operand)


class FunctionCall(Expression):
    """A call like ``COUNT(DISTINCT user_id)``.

    :param name: The function name, as written.
    :param arguments: The argument expressions.
    :param distinct: If ``DISTINCT`` was specified before the arguments.
    :param alias: Alias given to the call in a select list.
    """

    _fields = ("name", "arguments", "distinct", "alias")

    def __init__(
        self,
        name: str,
        arguments: list[Expression] | tuple = (),
        distinct: bool = False,
        alias: str | None = None,
    ) -> None:
        super().__init__(
            name=name, arguments=arguments, distinct=distinct, alias=alias
        )


class InExpression(Expression):
    """``expression [NOT] IN (value, ...)``"""

    _fields = ("expression", "values", "negated")

    def __init__(
        self,
        expression: Expression,
        values: list[Expression] | tuple,
        negated: bool = False,
    ) -> None:
        super().__init__(expression=expression, values=values, negated=negated)


class WhenClause(Node):
    _fields = ("condition", "result")

    def __init__(self, condition: Expression, result: Expression) -> None:
        super().__init__(condition=condition, result=result)


class CaseExpression(Expression):
    """``CASE [operand] WHEN ... THEN ... [ELSE ...] END``

    When ``operand`` is provided the conditions of the
    :class:`WhenClause` are values compared to the operand,
    otherwise they are boolean expressions.
    """

    _fields = ("operand", "whens", "else_result")

    def __init__(
        self,
        whens: list[WhenClause] | tuple,
        operand: Expression | None = None,
        else_result: Expression | None = None,
    ) -> None:
        super().__init__(whens=whens, operand=operand, else_result=else_result)


class Join(Node):
    """A ``[INNER|LEFT|RIGHT|OUTER] JOIN table [ON condition]`` clause."""

    KINDS = ("INNER", "LEFT", "RIGHT", "OUTER")

    _fields = ("kind", "table", "condition")

    def __init__(
        self, kind: str, table: TableRef, condition: Expression | None = None
    ) -> None:
        if kind not in self.KINDS:
            raise ValueError(f"Unsupported join kind: {kind}")
        super().__init__(kind=kind, table=table, condition=condition)


class OrderBySpec(Node):
    _fields = ("expression", "direction")

    def __init__(self, expression: Expression, direction: str = "ASC") -> None:
        super().__init__(expression=expression, direction=direction)


class GroupBySpec(Node):
    _fields = ("expressions",)

    def __init__(self, expressions: list[Expression] | tuple) -> None:
        super().__init__(expressions=expressions)


class Assignment(Node):
    """``column = value`` in the SET clause of an UPDATE."""

    _fields = ("column", "value")

    def __init__(self, column: ColumnRef, value: Expression) -> None:
        super().__init__(column=column, value=value)


class Select(Statement):
    """A SELECT statement.

    There is always at least one column, ``SELECT *``
    has a single wildcard :class:`ColumnRef`.
    The FROM clause is optional as far as the grammar is concerned,
    it's the consumers of the tree that might require it.
    """

    _fields = (
        "columns",
        "from_",
        "where",
        "joins",
        "group_by",
        "having",
        "order_by",
        "limit",
        "offset",
        "distinct",
    )

    def __init__(
        self,
        columns: list[Expression] | tuple,
        from_: TableRef | None = None,
        where: Expression | None = None,
        joins: list[Join] | tuple = (),
        group_by: GroupBySpec | None = None,
        having: Expression | None = None,
        order_by: list[OrderBySpec] | tuple | None = None,
        limit: int | None = None,
        offset: int | None = None,
        distinct: bool = False,
    ) -> None:
        if not columns:
            raise ValueError("A SELECT requires at least one column")
        super().__init__(
            columns=columns,
            from_=from_,
            where=where,
            joins=joins,
            group_by=group_by,
            having=having,
            order_by=order_by,
            limit=limit,
            offset=offset,
            distinct=distinct,
        )


class Insert(Statement):
    """An INSERT statement with one or more rows of values.

    :param table: The table to insert into.
    :param columns: Names of the columns, empty when not provided.
    :param values: One tuple of expressions for each inserted row.
    """

    _fields = ("table", "columns", "values")

    def __init__(
        self,
        table: TableRef,
        columns: list[str] | tuple,
        values: list[list[Expression]] | tuple,
    ) -> None:
        super().__init__(
            table=table, columns=columns, values=tuple(tuple(row) for row in values)
        )


class Update(Statement):
    _fields = ("table", "assignments", "where")

    def __init__(
        self,
        table: TableRef,
        assignments: list[Assignment] | tuple,
        where: Expression | None = None,
    ) -> None:
        super().__init__(table=table, assignments=assignments, where=where)


class Delete(Statement):
    _fields = ("table", "where")

    def __init__(self, table: TableRef, where: Expression | None = None) -> None:
        super().__init__(table=table, where=where)


NODE_TYPES = (
    Select,
    Insert,
    Update,
    Delete,
    ColumnRef,
    Literal,
    BinaryOp,
    UnaryOp,
    FunctionCall,
    InExpression,
    CaseExpression,
    WhenClause,
    TableRef,
    Join,
    OrderBySpec,
    GroupBySpec,
    Assignment,
)
