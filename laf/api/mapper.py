"""
API Mapper
==========

Request DTOs (pydantic) and their conversion into the knowledge model, plus
the response shape of an exported graph.

Field names follow the wire format clients already use: ``headName``,
``bodyLiterals``, ``labelName``, ``supportFunction`` and so on. Numeric
label values are accepted and rendered as strings the way the engine
renders numbers (``1`` -> ``"1.0"``).
"""
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from ..contracts.graph import Graph
from ..contracts.knowledge import Fact, OperationSet, OperationTable, Rule

LabelValue = Union[float, str]


# DTO Structures

class FactDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    argument: str
    attributes: List[LabelValue] = Field(default_factory=list)


class RuleDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    head_name: str = Field(alias="headName")
    body_literals: List[str] = Field(default_factory=list, alias="bodyLiterals")
    attributes: List[LabelValue] = Field(default_factory=list)


class LabelOperationsDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label_name: Optional[str] = Field(default=None, alias="labelName")
    support_function: str = Field(alias="supportFunction")
    aggregation_function: str = Field(alias="aggregationFunction")
    conflict_function: str = Field(alias="conflictFunction")


class ProgramInputRequest(BaseModel):
    facts: List[FactDTO] = Field(default_factory=list)
    rules: List[RuleDTO] = Field(default_factory=list)


class OperationInputRequest(BaseModel):
    labels: List[LabelOperationsDTO] = Field(default_factory=list)


class GraphRequest(BaseModel):
    """Stateless build: the whole program and its operations in one request."""
    facts: List[FactDTO] = Field(default_factory=list)
    rules: List[RuleDTO] = Field(default_factory=list)
    operations: Optional[OperationInputRequest] = None


# Request -> domain

def map_label(value: LabelValue) -> str:
    if isinstance(value, str):
        return value
    return repr(float(value))


def map_facts(dtos: Sequence[FactDTO]) -> List[Fact]:
    return [
        Fact(dto.name, dto.argument, [map_label(v) for v in dto.attributes])
        for dto in dtos
    ]


def map_rules(dtos: Sequence[RuleDTO]) -> List[Rule]:
    return [
        Rule(dto.head_name, tuple(dto.body_literals), [map_label(v) for v in dto.attributes])
        for dto in dtos
    ]


def map_operations(request: Optional[OperationInputRequest]) -> Optional[OperationTable]:
    """Operation table in label order; None when nothing was sent."""
    if request is None:
        return None
    return OperationTable.of(*(
        OperationSet(
            support=label.support_function,
            aggregation=label.aggregation_function,
            conflict=label.conflict_function,
            label_name=label.label_name
        )
        for label in request.labels
    ))


# Domain -> response

def map_graph_to_dto(graph: Graph) -> Dict[str, Any]:
    """
    Map an exported Graph to the response body.

    {"nodes": [{id, label, kind, attributes, deltaAttributes}],
     "edges": [{from, to, kind}]}
    """
    return graph.to_dict()
