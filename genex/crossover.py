"""
Crossover operators for genex genomes.

A crossover operator receives a child genome (already a copy of the
receiver unless ``modify`` was requested), the list of mate genomes, the
selected child positions and the operator parameters. It edits the child in
place and returns an operation log.
"""

from typing import Any, Callable, Dict, List, Sequence
import numpy as np

from .config_loader import ConfigurationError

CrossoverOperator = Callable[[Any, Sequence[Any], List[int], Dict, np.random.Generator], List[str]]

# Keys of a crossover mapping that choose child positions
SELECTION_KEYS = ('selection', 'rate', 'start', 'stop')


def default_crossover_rate(mate_count: int) -> float:
    """
    Share of positions taken from mates when no selection is given.

    With one mate half the genes are exchanged, with two mates two thirds,
    and so on: ``1 - 1 / (1 + mate_count)``.
    """
    return 1 - 1 / (1 + mate_count)


def splice(
    child,
    mates: Sequence[Any],
    selection: List[int],
    params: Dict,
    rng: np.random.Generator
) -> List[str]:
    """
    Copy genes from a uniformly chosen mate into each selected position.

    A mate shorter than the position is ignored for that position and the
    child keeps its own gene.
    """
    inherited = 0
    for position in selection:
        mate = mates[int(rng.integers(0, len(mates)))]
        if len(mate) > position:
            child.genes[position] = mate.genes[position]
            inherited += 1

    return [f"splice: {inherited}/{len(selection)} genes from {len(mates)} mates"]


def _blend(own, other, weight: float):
    if isinstance(own, tuple):
        return tuple(
            float((1 - weight) * a + weight * b) for a, b in zip(own, other)
        )
    try:
        return float((1 - weight) * own + weight * other)
    except TypeError:
        raise ConfigurationError(
            f"average crossover needs numeric genes, got {type(own).__name__}"
        )


def average(
    child,
    mates: Sequence[Any],
    selection: List[int],
    params: Dict,
    rng: np.random.Generator
) -> List[str]:
    """
    Blend each selected gene with the gene of a uniformly chosen mate.

    ``params['weight']`` (default 0.5) is the share given to the mate.
    """
    weight = params.get('weight', 0.5)
    blended = 0
    for position in selection:
        mate = mates[int(rng.integers(0, len(mates)))]
        if len(mate) > position:
            child.genes[position] = _blend(child.genes[position], mate.genes[position], weight)
            blended += 1

    return [f"average: blended {blended}/{len(selection)} genes (weight={weight})"]


CROSSOVERS: Dict[str, CrossoverOperator] = {
    'splice': splice,
    'average': average,
}


def register_crossover(name: str, operator: CrossoverOperator) -> CrossoverOperator:
    """Add a crossover operator to the registry."""
    CROSSOVERS[name] = operator
    return operator


def resolve_crossover(name) -> CrossoverOperator:
    """
    Look up a crossover operator by name (callables pass through).

    Raises:
        ConfigurationError: If the name is not registered
    """
    if callable(name):
        return name

    operator = CROSSOVERS.get(name)
    if operator is None:
        raise ConfigurationError(
            f"Unknown crossover: {name!r}. Available: {sorted(CROSSOVERS)}"
        )
    return operator


def crossover_statistics(child, parents: Sequence[Any]) -> Dict:
    """
    Calculate statistics about a crossover outcome.

    Args:
        child: Child genome
        parents: Receiver followed by its mates

    Returns:
        Dictionary with child size and similarity to each parent
    """
    stats = {
        'child_size': len(child),
        'parent_sizes': [len(parent) for parent in parents],
    }
    similarities = [child.how_similar(parent) for parent in parents]
    stats['similarities'] = similarities
    stats['total_similarity'] = sum(similarities)

    return stats


def normalize_crossover_spec(spec, mate_count: int) -> Dict:
    """
    Expand the accepted crossover spec forms into a mapping.

    Accepts ``None``, a selection spec (number, index list) or a mapping with
    ``name``, ``modify``, ``average`` and ``params`` keys plus the position
    selection keys ``selection``, ``rate``, ``start`` and ``stop``. Without
    ``selection`` or ``rate`` the default rate for ``mate_count`` applies.
    """
    if spec is None:
        spec = {}
    elif not isinstance(spec, dict):
        spec = {'selection': spec}

    selection = {key: spec[key] for key in SELECTION_KEYS if spec.get(key) is not None}
    if 'selection' not in selection and 'rate' not in selection:
        selection['rate'] = default_crossover_rate(mate_count)
    if list(selection) in (['selection'], ['rate']):
        selection = next(iter(selection.values()))

    return {
        'name': spec.get('name', 'average' if spec.get('average') else 'splice'),
        'selection': selection,
        'modify': spec.get('modify', False),
        'params': dict(spec.get('params') or {}),
    }

