"""
Data models for genex.

Core data structures representing population members, the phenotype
decoder contract, and generation history records.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .genome import GenomeBase, Epigenome

# Region name used when a member has no epigenome.
DEFAULT_REGION = "genome"

DEFAULT_MUTATION = {'name': 'substitution', 'selection': 0.05}


@runtime_checkable
class PhenotypeDecoder(Protocol):
    """
    Turns compiled genome regions into domain values.

    ``arguments`` maps each region (epigenome marker) to the list of gene
    values that region reads, in position order.
    """

    def decode(self, arguments: Dict[str, List[Any]]) -> Any:
        ...


@dataclass
class Individual:
    """
    A single population member.

    Attributes:
        genome: Genetic sequence of this member
        mutation: Mutation spec applied to this member during evolution
            (see GenomeBase.mutate)
        crossover: Crossover spec used when this member is crossed with mates
            (see GenomeBase.crossover); None uses the default rate
        epigenome: Optional marker sequence splitting the genome into regions
        decoder: Optional phenotype decoder producing ``traits``
        id: Unique identifier for this individual
        metadata: Additional information (parent ids, op logs, etc.)
    """
    genome: GenomeBase
    mutation: Any = field(default_factory=lambda: dict(DEFAULT_MUTATION))
    crossover: Any = None
    epigenome: Optional[Epigenome] = None
    decoder: Optional[PhenotypeDecoder] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "Individual":
        """
        Create a copy with an independent genome and metadata.

        The copy keeps this individual's id; the decoder is shared.

        Returns:
            New Individual
        """
        return Individual(
            genome=self.genome.copy(),
            mutation=self.mutation,
            crossover=self.crossover,
            epigenome=self.epigenome.copy() if self.epigenome is not None else None,
            decoder=self.decoder,
            id=self.id,
            metadata=self.metadata.copy(),
        )

    def spawn(self, genome: GenomeBase, parent_ids: Sequence[str]) -> "Individual":
        """Create a new member sharing this one's configuration with ``genome``."""
        return Individual(
            genome=genome,
            mutation=self.mutation,
            crossover=self.crossover,
            epigenome=self.epigenome.copy() if self.epigenome is not None else None,
            decoder=self.decoder,
            metadata={'parent_ids': list(parent_ids)},
        )

    @property
    def arguments(self) -> Dict[str, List[Any]]:
        """Genome values grouped by region."""
        if self.epigenome is None:
            return {DEFAULT_REGION: self.genome.to_list()}
        return self.epigenome.compile(self.genome)

    @property
    def traits(self) -> Any:
        """
        Decoded domain values.

        Without a decoder this is the plain gene list.
        """
        if self.decoder is None:
            return self.genome.to_list()
        return self.decoder.decode(self.arguments)

    def mutate(self, spec: Any = None) -> "Individual":
        """
        Mutate the genome with ``spec`` or the embedded config.

        A spec with ``modify: False`` mutates a copy, which then replaces
        this individual's genome.

        Returns:
            This individual
        """
        if spec is None:
            spec = self.mutation
        if spec is None:
            return self

        op_log: List[str] = []
        self.genome = self.genome.mutate(
            spec, callback=lambda ops, original, mutated: op_log.extend(ops)
        )
        self.metadata['mutation_ops'] = op_log
        return self

    def crossover_with(self, mates: Sequence["Individual"], spec: Any = None) -> "Individual":
        """
        Create a child by crossing this individual's genome with ``mates``.

        Args:
            mates: Mate individuals
            spec: Crossover spec (defaults to this individual's config)

        Returns:
            New Individual carrying the child genome
        """
        if spec is None:
            spec = self.crossover
        child_genome = self.genome.crossover(spec, [mate.genome for mate in mates])
        return self.spawn(child_genome, [self.id] + [mate.id for mate in mates])


@dataclass
class GenerationRecord:
    """
    One row of evolution history.

    Attributes:
        generation: Generation number after the pass
        population_size: Number of members after the pass
        best: Best score in the population
        mean: Mean score (None for vector scores)
        worst: Worst score in the population
        timestamp: When the record was created
    """
    generation: int
    population_size: int
    best: Any
    mean: Optional[float]
    worst: Any
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert record to dictionary for CSV export.

        Returns:
            Dictionary with string-serializable values
        """
        return {
            "generation": self.generation,
            "population_size": self.population_size,
            "best": _format_score(self.best),
            "mean": "" if self.mean is None else self.mean,
            "worst": _format_score(self.worst),
            "timestamp": self.timestamp or "",
        }


def _format_score(score: Any) -> Any:
    if isinstance(score, (list, tuple)):
        return ";".join(str(component) for component in score)
    return score
