"""
Mutation operators for genex genomes.

Every operator has the signature ``operator(genome, selection, params)`` where
``selection`` is a sorted list of in-bounds positions produced by
``genome.selection()``. Operators edit ``genome`` in place and return a list of
operation-log strings.

Operators are looked up by name in the registries at the bottom of this
module. Applications add their own with ``register_mutation``.
"""

from typing import Any, Callable, Dict, List, Optional

from .config_loader import ConfigurationError

MutationOperator = Callable[[Any, List[int], Dict], List[str]]


def group_runs(selection: List[int]) -> List[List[int]]:
    """
    Group selected positions into maximal runs of adjacent indices.

    A run breaks wherever the gap between consecutive positions is not 1.

    Args:
        selection: Ascending list of positions

    Returns:
        List of runs, each a list of consecutive positions

    Example:
        >>> group_runs([0, 1, 2, 5, 7, 8])
        [[0, 1, 2], [5], [7, 8]]
    """
    runs: List[List[int]] = []
    for position in selection:
        if runs and runs[-1][-1] == position - 1:
            runs[-1].append(position)
        else:
            runs.append([position])
    return runs


def substitution(genome, selection: List[int], params: Dict) -> List[str]:
    """Replace every selected gene with a fresh random value."""
    for position in selection:
        genome.to_random(position)
    if not selection:
        return []
    return [f"substitution: replaced {len(selection)} genes"]


def deletion(genome, selection: List[int], params: Dict) -> List[str]:
    """
    Remove selected positions, highest index first.

    Deletion stops as soon as the genome has shrunk to ``params['lower']``
    (default 1); the remaining selected positions are left untouched.
    """
    lower = params.get('lower', 1)
    if lower is None:
        lower = 0

    removed = []
    for position in reversed(selection):
        if len(genome) <= lower:
            break
        del genome.genes[position]
        removed.append(position)

    if not removed:
        return []
    return [f"deletion: removed positions {sorted(removed)}"]


def duplication(genome, selection: List[int], params: Dict) -> List[str]:
    """
    Repeat each run of contiguously selected genes immediately after itself.

    Runs are processed from the last one backwards so earlier insertions
    never shift positions that are still to be processed.
    """
    runs = group_runs(selection)
    for run in reversed(runs):
        values = [genome.genes[position] for position in run]
        insert_at = run[-1] + 1
        genome.genes[insert_at:insert_at] = values

    return [f"duplication: repeated run {run[0]}..{run[-1]}" for run in runs]


def inversion(genome, selection: List[int], params: Dict) -> List[str]:
    """Reverse each run of contiguously selected genes in place."""
    op_log = []
    for run in group_runs(selection):
        if len(run) < 2:
            continue
        start, stop = run[0], run[-1] + 1
        genome.genes[start:stop] = genome.genes[start:stop][::-1]
        op_log.append(f"inversion: reversed {start}..{stop - 1}")
    return op_log


def increment(genome, selection: List[int], params: Dict) -> List[str]:
    """Move selected genes toward 1 by ``params['step']``, clamping at 1."""
    step = params.get('step', 0.1)
    for position in selection:
        genome.genes[position] = min(1.0, genome.genes[position] + step)
    if not selection:
        return []
    return [f"increment: +{step} on {len(selection)} genes"]


def decrement(genome, selection: List[int], params: Dict) -> List[str]:
    """Move selected genes toward 0 by ``params['step']``, clamping at 0."""
    step = params.get('step', 0.1)
    for position in selection:
        genome.genes[position] = max(0.0, genome.genes[position] - step)
    if not selection:
        return []
    return [f"decrement: -{step} on {len(selection)} genes"]


def rotate(genome, selection: List[int], params: Dict) -> List[str]:
    """
    Add a scaled direction vector to each selected gene-vector.

    Each component wraps modulo 1. ``params['direction']`` defaults to a
    random vector and ``params['rotations']`` to 1.
    """
    direction = params.get('direction')
    if direction is None:
        direction = genome.random_gene()
    rotations = params.get('rotations', 1)

    for position in selection:
        vector = list(genome.genes[position])
        for d in range(min(len(direction), len(vector))):
            vector[d] = (vector[d] + direction[d] * rotations) % 1
        genome.genes[position] = tuple(float(component) for component in vector)

    if not selection:
        return []
    return [f"rotate: {rotations} x {list(direction)} on {len(selection)} genes"]


BASE_MUTATIONS: Dict[str, MutationOperator] = {
    'substitution': substitution,
    'deletion': deletion,
    'duplication': duplication,
    'inversion': inversion,
}

UNIT_MUTATIONS: Dict[str, MutationOperator] = {
    **BASE_MUTATIONS,
    'increment': increment,
    'decrement': decrement,
}

VECTOR_MUTATIONS: Dict[str, MutationOperator] = {
    **BASE_MUTATIONS,
    'rotate': rotate,
}

EPIGENOME_MUTATIONS: Dict[str, MutationOperator] = dict(BASE_MUTATIONS)


def register_mutation(
    name: str,
    operator: MutationOperator,
    table: Optional[Dict[str, MutationOperator]] = None
) -> MutationOperator:
    """
    Add a mutation operator to a registry.

    Args:
        name: Name used in mutation specs
        operator: Callable ``(genome, selection, params) -> op_log``
        table: Registry to extend (defaults to UNIT_MUTATIONS)

    Returns:
        The operator, so this can be used as a plain call or a helper
    """
    if table is None:
        table = UNIT_MUTATIONS
    table[name] = operator
    return operator


def resolve_mutation(name, table: Dict[str, MutationOperator]) -> MutationOperator:
    """
    Look up a mutation operator by name.

    Callables are returned unchanged so specs may carry ad hoc operators.

    Raises:
        ConfigurationError: If the name is not registered
    """
    if callable(name):
        return name

    operator = table.get(name)
    if operator is None:
        raise ConfigurationError(
            f"Unknown mutation: {name!r}. Available: {sorted(table)}"
        )
    return operator
