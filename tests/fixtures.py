"""
Program Fixtures

Small, explicit programs shared across test modules. All fixtures are
hand-written - no random generation.
"""

from typing import List, Tuple

from laf.contracts.knowledge import Fact, OperationSet, OperationTable, Rule

Program = Tuple[List[Fact], List[Rule], OperationTable]


def single_label(
    support: str = "min(X,Y)",
    aggregation: str = "max(X,Y)",
    conflict: str = "X-Y",
    label_name: str = "weight"
) -> OperationTable:
    return OperationTable.of(OperationSet(support, aggregation, conflict, label_name))


SYMBOLIC = single_label("Union", "Union", "Intersection", label_name="tags")


# =============================================================================
# SCENARIOS
# =============================================================================

def scenario_support() -> Program:
    """buy :- goodArea, cheap over houseA."""
    facts = [
        Fact("goodArea", "houseA", ["0.8"]),
        Fact("cheap", "houseA", ["0.6"]),
    ]
    rules = [Rule("buy", ("goodArea", "cheap"), ["1.0"])]
    return facts, rules, single_label()


def scenario_aggregation() -> Program:
    """Two rules derive buy(houseA) with 0.6 and 0.4."""
    facts = [
        Fact("goodArea", "houseA", ["0.6"]),
        Fact("cheap", "houseA", ["0.4"]),
    ]
    rules = [
        Rule("buy", ("goodArea",), ["1.0"]),
        Rule("buy", ("cheap",), ["1.0"]),
    ]
    return facts, rules, single_label()


def scenario_conflict() -> Program:
    """p(a) and its negation, no rules."""
    facts = [
        Fact("p", "a", ["0.7"]),
        Fact("~p", "a", ["0.3"]),
    ]
    return facts, [], single_label()


def scenario_symbolic() -> Program:
    """Set-valued labels combined with Union."""
    facts = [
        Fact("paint", "car", ["red"]),
        Fact("trim", "car", ["blue"]),
    ]
    rules = [Rule("styled", ("paint", "trim"), ["red"])]
    return facts, rules, SYMBOLIC


def scenario_rederivation() -> Program:
    """
    d depends on c, and c is aggregated after d was derived, so d must be
    detached and derived again from the canonical c.
    """
    facts = [
        Fact("a", "x", ["0.9"]),
        Fact("b", "x", ["0.5"]),
    ]
    rules = [
        Rule("c", ("a",), ["1.0"]),
        Rule("d", ("c",), ["1.0"]),
        Rule("c", ("b",), ["1.0"]),
    ]
    return facts, rules, single_label()


def scenario_defeasible() -> Program:
    """Birds fly, penguins don't."""
    facts = [
        Fact("bird", "tweety", ["0.9"]),
        Fact("penguin", "tweety", ["0.8"]),
    ]
    rules = [
        Rule("flies", ("bird",), ["0.9"]),
        Rule("~flies", ("penguin",), ["1.0"]),
    ]
    return facts, rules, single_label()
