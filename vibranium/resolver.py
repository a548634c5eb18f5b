"""Orders the contracts of a manifest so that every contract is deployed after the ones it references."""

from collections import OrderedDict
from graphlib import CycleError, TopologicalSorter
from typing import Dict, List, Sequence

from vibranium.exceptions import CyclicDependencyError, MissingReferenceError
from vibranium.manifest import ContractSpec

DependencyGraph = Dict[str, List[str]]


def build_dependency_graph(specs: Sequence[ContractSpec]) -> DependencyGraph:
    """
    Returns the edges from each contract name to the names it references.
    Contracts without references are not part of the graph unless referenced.
    """
    names = {spec.name for spec in specs}
    graph: DependencyGraph = OrderedDict()
    for spec in specs:
        for reference in spec.references():
            if reference not in names:
                raise MissingReferenceError(reference)
            if reference == spec.name:
                raise CyclicDependencyError(spec.name)
            graph.setdefault(spec.name, []).append(reference)
    return graph


def resolve_deployment_order(specs: Sequence[ContractSpec]) -> List[ContractSpec]:
    """
    Returns the specs reordered so that references precede their dependents.
    Specs outside the dependency graph follow, in their original order.
    """
    graph = build_dependency_graph(specs)

    sorter = TopologicalSorter()
    for name, references in graph.items():
        sorter.add(name, *references)
    try:
        ordered_names = list(sorter.static_order())
    except CycleError as err:
        cycle = err.args[1]
        raise CyclicDependencyError(cycle[0]) from err

    specs_by_name: Dict[str, List[ContractSpec]] = OrderedDict()
    for spec in specs:
        specs_by_name.setdefault(spec.name, []).append(spec)

    ordered = [spec for name in ordered_names for spec in specs_by_name[name]]
    graph_names = set(ordered_names)
    ordered.extend(spec for spec in specs if spec.name not in graph_names)
    return ordered
