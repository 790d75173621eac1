"""
Generation strategies for genex.

A generation strategy is any callable ``strategy(population)`` returning
the next member list. TournamentGeneration is the built-in one: members
compete within groups, the best of each group survive as elites, and every
other member is replaced by a child crossed against its group's elites.
"""

from typing import Any, Callable, List, Optional, Sequence

from .config_loader import ConfigurationError
from .data_models import Individual
from .selection import CompareFunction, compare_scores, is_leaf, resolve_fitness

SurvivalCallback = Callable[[List[List[Individual]]], Sequence[Individual]]
RemovalCallback = Callable[[List[Individual]], Sequence[Individual]]


class TournamentGeneration:
    """
    Group-wise tournament with elitism.

    One pass:
        1. Shuffle members and split them into groups
        2. Rank each group, fitness evaluated member-against-group
        3. Copy the top ``elites`` of each group unchanged
        4. Replace every other member by crossing it with the group's elites
        5. Mutate every child with its own mutation configuration
        6. Drop whatever ``removal(children)`` returns and append copies of
           whatever ``survival(previous_ranked)`` returns

    Attributes:
        fitness: Fitness function ``(member, group) -> score``
        compare: Ascending score comparison
        groups: Number of groups (None with no group_size: one group)
        group_size: Members per group, alternative to ``groups``
        elites: Survivors per group
        shuffle: Shuffle members before grouping
        crossover: Crossover spec overriding each member's own
        mutation: Mutation spec overriding each member's own
        survival: Receives the ranked previous members, grouped, and returns
            those to carry over
        removal: Receives the children and returns those to drop
    """

    def __init__(
        self,
        fitness: Any = None,
        compare: Optional[CompareFunction] = None,
        groups: Optional[int] = None,
        group_size: Optional[int] = None,
        elites: int = 1,
        shuffle: bool = True,
        crossover: Any = None,
        mutation: Any = None,
        survival: Optional[SurvivalCallback] = None,
        removal: Optional[RemovalCallback] = None
    ):
        self.fitness = resolve_fitness(fitness)
        self.compare = compare or compare_scores

        if groups is not None and group_size is not None:
            raise ConfigurationError("Specify either groups or group_size, not both")
        if isinstance(elites, bool) or not isinstance(elites, int) or elites < 1:
            raise ConfigurationError(f"elites must be a positive integer, got {elites!r}")

        self.groups = groups
        self.group_size = group_size
        self.elites = elites
        self.shuffle = shuffle
        self.crossover = crossover
        self.mutation = mutation
        self.survival = survival
        self.removal = removal

    def selection_spec(self) -> dict:
        """Selection spec ranking members within their groups."""
        spec = {
            'shuffle': self.shuffle,
            'sort': {'fitness': self.fitness, 'compare': self.compare},
        }
        if self.group_size is not None:
            spec['groups'] = True
            spec['size'] = self.group_size
        elif self.groups is not None:
            spec['groups'] = self.groups
        return spec

    def __call__(self, population) -> List[Individual]:
        """
        Build the next member list of ``population``.

        The population itself is not modified; an exception raised by the
        fitness function propagates and leaves it untouched.

        Returns:
            Next generation's members
        """
        ranked = population.selection(self.selection_spec())
        ranked_groups = [ranked] if is_leaf(ranked) else ranked
        members = population.members

        children: List[Individual] = []
        for group in ranked_groups:
            if not group:
                continue
            elites = [members[index].copy() for index in group[:self.elites]]
            children.extend(elites)
            for index in group[self.elites:]:
                children.append(members[index].copy().crossover_with(elites, self.crossover))

        for child in children:
            child.mutate(self.mutation)

        if self.removal is not None:
            dropped = {id(child) for child in self.removal(children)}
            children = [child for child in children if id(child) not in dropped]

        if self.survival is not None:
            previous = [[members[index] for index in group] for group in ranked_groups]
            children.extend(member.copy() for member in self.survival(previous))

        return children
