"""
Population container for genex.

A Population owns the ordered member list, the named selection cache, the
generation counter and the random generator shared by every randomized
operation on its members. Operations take selection specs (see
``genex.selection.resolve_selection``) and dereference them against the
live member list.
"""

import functools
import statistics
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence
import numpy as np

from .config_loader import ConfigurationError
from .data_models import Individual
from .selection import (
    Selection,
    CompareFunction,
    compare_scores,
    flatten_selection,
    is_vector_score,
    rank_indices,
    resolve_fitness,
    resolve_selection,
    sort_selection,
)


class Population:
    """
    Ordered collection of Individuals evolving over generations.

    Attributes:
        members: Live member list
        named_selections: Selections cached by name
        generation: Number of completed generation passes
        rng: Random number generator
    """

    def __init__(
        self,
        members: Optional[Sequence[Individual]] = None,
        prototype: Optional[Individual] = None,
        size: Optional[int] = None,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Create a population from explicit members or from a prototype.

        Args:
            members: Initial members (taken as given)
            prototype: Member copied ``size`` times; each copy gets a fresh
                id and a re-randomized genome
            size: Number of prototype copies
            rng: Random number generator

        Raises:
            ConfigurationError: If neither members nor prototype and size are given
        """
        self.rng = rng if rng is not None else np.random.default_rng()
        self.named_selections: Dict[str, Selection] = {}
        self.generation = 0

        if members is not None:
            self.members: List[Individual] = list(members)
        elif prototype is not None and size is not None:
            self.members = [self._from_prototype(prototype) for _ in range(size)]
        else:
            raise ConfigurationError(
                "Population requires members, or a prototype together with a size"
            )

    @staticmethod
    def _from_prototype(prototype: Individual) -> Individual:
        member = prototype.copy()
        member.id = uuid.uuid4().hex
        member.genome.fill_random()
        return member

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self):
        return iter(self.members)

    def __getitem__(self, index: int) -> Individual:
        return self.members[index]

    def selection(self, spec: Any = True) -> Selection:
        """Resolve a selection spec against the current members."""
        return resolve_selection(spec, self.members, self.named_selections, self.rng)

    def sort(self, selection: Any = True, options: Any = None) -> Selection:
        """
        Rank the members of a selection.

        Args:
            selection: Selection spec
            options: Fitness name/callable or sort mapping

        Returns:
            Reordered selection (the member list itself is untouched)
        """
        return sort_selection(self.selection(selection), self.members, options, self.rng)

    def remove(self, selection: Any = True) -> List[Individual]:
        """
        Remove the selected members.

        Returns:
            Removed members, in descending index order
        """
        indices = sorted(set(flatten_selection(self.selection(selection))), reverse=True)
        return [self.members.pop(index) for index in indices]

    def duplicate(self, selection: Any = True) -> List[Individual]:
        """
        Append a copy of each selected member to the end of the population.

        Copies get fresh ids and record their source in ``parent_ids``.

        Returns:
            The appended copies
        """
        copies = [
            self.members[index].spawn(self.members[index].genome.copy(), [self.members[index].id])
            for index in flatten_selection(self.selection(selection))
        ]
        self.members.extend(copies)
        return copies

    def mutate(self, selection: Any = True, spec: Any = None) -> "Population":
        """
        Mutate the selected members in place.

        Args:
            selection: Selection spec
            spec: Mutation spec; None uses each member's own configuration
        """
        for index in flatten_selection(self.selection(selection)):
            self.members[index].mutate(spec)
        return self

    def crossover(self, selection: Any = True, mates: Any = True, spec: Any = None) -> "Population":
        """
        Replace each selected member with its child against the mates.

        A member is never its own mate. Members left without a mate are kept
        unchanged.

        Args:
            selection: Selection spec of members to replace
            mates: Selection spec of the mating pool
            spec: Crossover spec; None uses each member's own configuration
        """
        targets = flatten_selection(self.selection(selection))
        pool = flatten_selection(self.selection(mates))

        children = {}
        for index in targets:
            partners = [self.members[mate] for mate in pool if mate != index]
            if partners:
                children[index] = self.members[index].copy().crossover_with(partners, spec)

        for index, child in children.items():
            self.members[index] = child
        return self

    def evolve(self, generation: Optional[Callable] = None, **options) -> int:
        """
        Run one generation pass.

        The next member list is built by ``generation(population)``; it
        replaces the current members only when the pass succeeds.

        Args:
            generation: Generation strategy (e.g. a TournamentGeneration);
                built from ``options`` when omitted
            **options: TournamentGeneration keyword arguments

        Returns:
            The new generation number
        """
        if generation is None:
            from .generation import TournamentGeneration
            generation = TournamentGeneration(**options)

        next_members = generation(self)
        self.members = list(next_members)
        self.generation += 1
        return self.generation

    def fittest(
        self,
        fitness: Any,
        amount: int = 1,
        compare: Optional[CompareFunction] = None
    ) -> List[Individual]:
        """
        Return the ``amount`` best members, best first.

        Every member competes against the whole population.
        """
        ranked = rank_indices(
            list(range(len(self.members))),
            self.members,
            resolve_fitness(fitness),
            compare or compare_scores,
        )
        return [self.members[index] for index in ranked[:amount]]

    def statistics(self, fitness: Any, compare: Optional[CompareFunction] = None) -> Dict[str, Any]:
        """
        Summarize member scores.

        Args:
            fitness: Fitness name or callable
            compare: Comparison function (defaults to compare_scores)

        Returns:
            Dictionary with 'size', 'best', 'worst' and 'mean' (None for
            vector scores or an empty population)
        """
        func = resolve_fitness(fitness)
        compare = compare or compare_scores
        scores = [func(member, self.members) for member in self.members]

        stats: Dict[str, Any] = {'size': len(scores), 'best': None, 'mean': None, 'worst': None}
        if not scores:
            return stats

        key = functools.cmp_to_key(compare)
        stats['best'] = max(scores, key=key)
        stats['worst'] = min(scores, key=key)
        if not any(is_vector_score(score) for score in scores):
            stats['mean'] = float(statistics.mean(scores))

        return stats
