"""
Tests for Rule Table Completeness
=================================

Rewrite visitors must account for every statement and expression kind.
"""

import pytest

from runtyper.passes.runtime_checks import RuleVisitor, RuntimeCheckVisitor
from runtyper.shared.errors import RuntyperImplementationError
from runtyper.shared.nodes import NodeType, TYPE_NODE_KINDS

ALL_VALUE_KINDS = frozenset(set(NodeType) - TYPE_NODE_KINDS)


def test_rewrite_visitor_covers_every_kind():
    covered = (
        set(RuntimeCheckVisitor.enter_rules)
        | set(RuntimeCheckVisitor.exit_rules)
        | set(RuntimeCheckVisitor.passthrough)
    )
    assert ALL_VALUE_KINDS <= covered


def test_incomplete_table_rejected():
    with pytest.raises(RuntyperImplementationError, match="has no rule for"):
        class Partial(RuleVisitor):
            passthrough = frozenset(ALL_VALUE_KINDS - {NodeType.RETURN_STATEMENT})


def test_missing_rule_method_rejected():
    with pytest.raises(RuntyperImplementationError, match="lacks rule method"):
        class Misnamed(RuleVisitor):
            enter_rules = {NodeType.RETURN_STATEMENT: "enter_return"}
            passthrough = frozenset(ALL_VALUE_KINDS - {NodeType.RETURN_STATEMENT})


def test_complete_table_accepted():
    class Passive(RuleVisitor):
        passthrough = ALL_VALUE_KINDS

    assert Passive.passthrough == ALL_VALUE_KINDS
