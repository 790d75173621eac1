"""
Selection algebra over population members.

A selection is either a flat list of member indices (a leaf) or a list of
selections (one nesting level per grouping level). Selections never copy
member data; they are dereferenced against the live member list.

``resolve_selection`` turns a declarative spec into a selection. Mapping
specs apply their combinators in a fixed order: shuffle, then groups, then
size, then sort. Each combinator works on every leaf of the selection.

Sorting ranks members by a fitness function evaluated member-against-group
and a comparison function (scalar difference, or Pareto dominance for
vector scores).
"""

import copy
import functools
import numbers
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import numpy as np

from .config_loader import ConfigurationError

Selection = List[Any]
FitnessFunction = Callable[[Any, List[Any]], Any]
CompareFunction = Callable[[Any, Any], float]

SORT_ORDERS = ('descending', 'ascending', 'random')

FITNESS_FUNCTIONS: Dict[str, FitnessFunction] = {}


def register_fitness(name: str, fitness: Optional[FitnessFunction] = None):
    """
    Register a fitness function under ``name``.

    Usable directly, ``register_fitness('score', func)``, or as a decorator:

        @register_fitness('matches')
        def matches(member, group):
            ...
    """
    if fitness is not None:
        FITNESS_FUNCTIONS[name] = fitness
        return fitness

    def decorator(func: FitnessFunction) -> FitnessFunction:
        FITNESS_FUNCTIONS[name] = func
        return func

    return decorator


def resolve_fitness(fitness: Union[str, FitnessFunction, None]) -> FitnessFunction:
    """
    Return a callable fitness function.

    Raises:
        ConfigurationError: If fitness is missing or not registered
    """
    if fitness is None:
        raise ConfigurationError("A fitness function is required")
    if callable(fitness):
        return fitness

    func = FITNESS_FUNCTIONS.get(fitness)
    if func is None:
        raise ConfigurationError(
            f"Unknown fitness function: {fitness!r}. Registered: {sorted(FITNESS_FUNCTIONS)}"
        )
    return func


def is_vector_score(score: Any) -> bool:
    return isinstance(score, (list, tuple, np.ndarray))


def pareto_compare(a: Sequence[float], b: Sequence[float]) -> int:
    """
    Compare two score vectors by Pareto dominance.

    Returns:
        1 if every component of ``a`` exceeds ``b``'s, -1 if every component
        of ``b`` exceeds ``a``'s, 0 otherwise
    """
    pairs = list(zip(a, b))
    if pairs and all(x > y for x, y in pairs):
        return 1
    if pairs and all(y > x for x, y in pairs):
        return -1
    return 0


def compare_scores(a: Any, b: Any) -> float:
    """
    Default comparison in ascending sense.

    Scalars compare by difference; vectors by Pareto dominance.
    """
    if is_vector_score(a) or is_vector_score(b):
        return pareto_compare(a, b)
    return a - b


def is_leaf(selection: Selection) -> bool:
    """True for a flat list of indices (including the empty list)."""
    return all(
        isinstance(item, numbers.Integral) and not isinstance(item, bool)
        for item in selection
    )


def map_leaves(selection: Selection, func: Callable[[List[int]], Selection]) -> Selection:
    """Apply ``func`` to every leaf of a selection, keeping the nesting."""
    if is_leaf(selection):
        return func(list(selection))
    return [map_leaves(item, func) for item in selection]


def flatten_selection(selection: Selection) -> List[int]:
    """All indices of a selection in order."""
    if is_leaf(selection):
        return list(selection)
    flat: List[int] = []
    for item in selection:
        flat.extend(flatten_selection(item))
    return flat


def shuffle_indices(indices: List[int], rng: np.random.Generator) -> List[int]:
    """Return a uniformly shuffled copy (Fisher-Yates)."""
    shuffled = list(indices)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def chunk_indices(indices: List[int], group_size: int) -> List[List[int]]:
    """
    Split indices into consecutive groups of ``group_size``.

    The remainder forms one smaller trailing group.
    """
    if group_size < 1:
        raise ConfigurationError(f"Group size must be at least 1, got {group_size}")
    return [indices[i:i + group_size] for i in range(0, len(indices), group_size)]


def split_into_groups(indices: List[int], groups: int) -> List[List[int]]:
    """
    Split indices into ``min(groups, len(indices))`` consecutive groups.

    Group sizes differ by at most one; the larger groups come first.

    Example:
        >>> split_into_groups(list(range(10)), 3)
        [[0, 1, 2, 3], [4, 5, 6], [7, 8, 9]]
    """
    if isinstance(groups, bool) or groups < 1:
        raise ConfigurationError(f"Number of groups must be at least 1, got {groups!r}")
    if not indices:
        return []
    chunks = np.array_split(np.asarray(indices), min(groups, len(indices)))
    return [[int(index) for index in chunk] for chunk in chunks]


def normalize_sort_options(options: Any) -> Dict[str, Any]:
    """Expand ``sort`` shorthands (fitness name or callable) into a mapping."""
    if isinstance(options, dict):
        return dict(options)
    if isinstance(options, str) or callable(options):
        return {'fitness': options}
    raise ConfigurationError(f"Unsupported sort options: {options!r}")


def rank_indices(
    indices: List[int],
    members: Sequence[Any],
    fitness: FitnessFunction,
    compare: CompareFunction = compare_scores,
    order: str = 'descending',
    threshold: Any = None
) -> List[int]:
    """
    Rank one group of member indices.

    Each member is scored once against the members of the group.

    Args:
        indices: Member indices forming the competing group
        members: Live member list
        fitness: ``fitness(member, group) -> score``
        compare: Ascending comparison of two scores
        order: 'descending' puts the best first, 'ascending' the worst first
        threshold: Stop at the first member whose score does not reach it

    Returns:
        Ranked indices
    """
    group = [members[i] for i in indices]
    scores = [fitness(member, group) for member in group]

    key = functools.cmp_to_key(lambda a, b: compare(scores[a], scores[b]))
    ranked = sorted(range(len(indices)), key=key, reverse=(order == 'descending'))

    if threshold is not None:
        kept = []
        for slot in ranked:
            outcome = compare(scores[slot], threshold)
            if (order == 'descending' and outcome < 0) or (order == 'ascending' and outcome > 0):
                break
            kept.append(slot)
        ranked = kept

    return [indices[slot] for slot in ranked]


def sort_selection(
    selection: Selection,
    members: Sequence[Any],
    options: Any,
    rng: np.random.Generator
) -> Selection:
    """
    Reorder every leaf of a selection.

    Args:
        selection: Selection to reorder (never the population itself)
        members: Live member list
        options: Fitness name/callable, or mapping with ``fitness``,
            ``compare``, ``order`` and ``threshold``
        rng: Random number generator (used by ``order='random'``)

    Returns:
        New selection with the same nesting

    Raises:
        ConfigurationError: If the order is unknown or fitness is missing
    """
    opts = normalize_sort_options(options)
    order = opts.get('order', 'descending')
    if order not in SORT_ORDERS:
        raise ConfigurationError(f"Unknown sort order: {order!r}. Must be one of {SORT_ORDERS}")

    if order == 'random':
        return map_leaves(selection, lambda leaf: shuffle_indices(leaf, rng))

    fitness = resolve_fitness(opts.get('fitness'))
    compare = opts.get('compare') or compare_scores
    threshold = opts.get('threshold')

    return map_leaves(
        selection,
        lambda leaf: rank_indices(leaf, members, fitness, compare, order, threshold)
    )


def resolve_selection(
    spec: Any,
    members: Sequence[Any],
    named: Dict[str, Selection],
    rng: np.random.Generator
) -> Selection:
    """
    Convert a declarative spec into a selection over ``members``.

    Args:
        spec: One of
            - True: every index; any falsy value: no index
            - str: the named selection cached under that key (empty if unset)
            - list: indices (out-of-bounds dropped) or nested specs, each
              resolved recursively
            - dict: ``selection`` (base, default True), ``shuffle``,
              ``groups``, ``size``, ``sort`` and ``name``
        members: Live member list
        named: Named selection cache, updated when a mapping sets ``name``
        rng: Random number generator

    Returns:
        Selection (flat or nested list of indices)

    Raises:
        ConfigurationError: If the selection spec has an unsupported form
    """
    count = len(members)

    if isinstance(spec, dict):
        return _resolve_mapping(spec, members, named, rng)
    if spec is True:
        return list(range(count))
    if not spec:
        return []
    if isinstance(spec, str):
        return copy.deepcopy(named.get(spec, []))
    if isinstance(spec, (list, tuple, range)):
        items = list(spec)
        if is_leaf(items):
            return [int(i) for i in items if 0 <= i < count]

        resolved = []
        for item in items:
            if isinstance(item, numbers.Integral) and not isinstance(item, bool):
                if 0 <= item < count:
                    resolved.append([int(item)])
            else:
                resolved.append(resolve_selection(item, members, named, rng))
        return resolved

    raise ConfigurationError(f"Unsupported selection spec: {spec!r}")


def _resolve_mapping(
    spec: Dict[str, Any],
    members: Sequence[Any],
    named: Dict[str, Selection],
    rng: np.random.Generator
) -> Selection:
    selection = resolve_selection(spec.get('selection', True), members, named, rng)

    if spec.get('shuffle'):
        selection = map_leaves(selection, lambda leaf: shuffle_indices(leaf, rng))

    groups = spec.get('groups')
    size = spec.get('size')
    if groups is True:
        if size is None:
            raise ConfigurationError("'groups: true' requires 'size' to set the group size")
        selection = map_leaves(selection, lambda leaf: chunk_indices(leaf, size))
    elif groups:
        selection = map_leaves(selection, lambda leaf: split_into_groups(leaf, groups))
        if size is not None:
            selection = map_leaves(selection, lambda leaf: leaf[:size])
    elif size is not None:
        selection = map_leaves(selection, lambda leaf: leaf[:size])

    if spec.get('sort'):
        selection = sort_selection(selection, members, spec['sort'], rng)

    name = spec.get('name')
    if name:
        named[name] = copy.deepcopy(selection)

    return selection
