"""
Genetic sequences for genex.

GenomeBase is an ordered container of genes with size-changing and
randomized-fill primitives, a non-destructive position query
(``selection``), and the ``mutate`` / ``crossover`` entry points that
dispatch to the operator registries in ``genex.mutation`` and
``genex.crossover``.

Concrete genome types:
- Genome: real-valued genes in [0, 1]
- UnitVectorGenome: fixed-dimension tuples of values in [0, 1]
- Epigenome: marker strings drawn from an alphabet; compiles a genome into
  per-region argument lists for a phenotype decoder
"""

import numbers
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import numpy as np

from .config_loader import ConfigurationError
from .mutation import (
    BASE_MUTATIONS,
    UNIT_MUTATIONS,
    VECTOR_MUTATIONS,
    EPIGENOME_MUTATIONS,
    resolve_mutation,
)
from .crossover import normalize_crossover_spec, resolve_crossover


class GenomeBase:
    """
    Ordered sequence of genes.

    Subclasses define ``random_gene`` and may override ``_coerce`` to
    validate gene values and ``mutations`` to expose their operator table.

    Attributes:
        genes: List holding the gene values
        rng: Random number generator used by every randomized operation
    """

    mutations = BASE_MUTATIONS

    def __init__(
        self,
        genes: Union[int, Sequence[Any], None] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.genes: List[Any] = []

        if genes is None:
            return
        if isinstance(genes, bool):
            raise ConfigurationError("Genome length must be an integer, got a bool")
        if isinstance(genes, numbers.Integral):
            if genes < 0:
                raise ConfigurationError(f"Genome length must be non-negative, got {genes}")
            self.size = int(genes)
        else:
            self.genes = [self._coerce(gene) for gene in genes]

    def random_gene(self) -> Any:
        """Return a freshly generated gene value."""
        raise NotImplementedError(f"{type(self).__name__} does not define random_gene")

    def _coerce(self, gene: Any) -> Any:
        return gene

    # Sequence protocol

    def __len__(self) -> int:
        return len(self.genes)

    def __iter__(self):
        return iter(self.genes)

    def __getitem__(self, index):
        return self.genes[index]

    def __setitem__(self, index: int, gene: Any) -> None:
        self.genes[index] = self._coerce(gene)

    def __eq__(self, other) -> bool:
        if isinstance(other, GenomeBase) and type(other) is not type(self):
            return False
        if isinstance(other, (GenomeBase, list, tuple)):
            return self.is_equal(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.genes!r})"

    # Size

    @property
    def size(self) -> int:
        """
        Number of genes.

        Setting a larger size fills the new positions with random genes;
        setting a smaller size truncates.
        """
        return len(self.genes)

    @size.setter
    def size(self, length: int) -> None:
        if isinstance(length, bool) or length < 0:
            raise ConfigurationError(f"Genome length must be a non-negative integer, got {length!r}")
        start = len(self.genes)
        del self.genes[length:]
        if start < length:
            self.genes.extend([None] * (length - start))
            self.fill_random(start, length)

    def to_random(self, position: int) -> "GenomeBase":
        """Set one position to a random gene value."""
        self.genes[position] = self.random_gene()
        return self

    def fill_random(self, start: int = 0, stop: Optional[int] = None) -> "GenomeBase":
        """
        Set positions ``start`` (inclusive) to ``stop`` (exclusive) to random genes.

        Args:
            start: First position to fill
            stop: Position after the last one to fill (defaults to the end)

        Returns:
            This genome
        """
        if stop is None:
            stop = len(self.genes)
        for position in range(start, stop):
            self.to_random(position)
        return self

    # Queries

    def selection(self, spec: Any = None) -> List[int]:
        """
        Convert a selection spec into an ascending list of positions.

        The genome is never modified.

        Args:
            spec: One of
                - None: every position
                - bool: every position (True) or none (False)
                - number: rate; each position is kept with this probability
                - list of ints: the in-bounds positions of the list
                - dict: ``rate``, ``start``, ``stop`` (half-open) and a nested
                  ``selection``; the result is their intersection

        Returns:
            List of selected positions

        Raises:
            ConfigurationError: If the selection spec has an unsupported form
        """
        positions = list(range(len(self.genes)))

        if spec is None:
            return positions
        if isinstance(spec, bool):
            return positions if spec else []
        if isinstance(spec, numbers.Number):
            return self._sample(positions, spec)
        if isinstance(spec, str):
            return self._select_marker(spec)
        if isinstance(spec, dict):
            start = spec.get('start')
            stop = spec.get('stop')
            if start is not None:
                positions = [p for p in positions if p >= start]
            if stop is not None:
                positions = [p for p in positions if p < stop]

            nested = spec.get('selection')
            if nested is not None:
                chosen = set(self.selection(nested))
                positions = [p for p in positions if p in chosen]

            rate = spec.get('rate')
            if rate is not None:
                positions = self._sample(positions, rate)
            return positions
        if isinstance(spec, (list, tuple, range, np.ndarray)):
            return sorted({int(p) for p in spec if 0 <= p < len(self.genes)})

        raise ConfigurationError(f"Unsupported selection spec: {spec!r}")

    def _sample(self, positions: List[int], rate: float) -> List[int]:
        return [p for p in positions if self.rng.random() < rate]

    def _select_marker(self, marker: str) -> List[int]:
        raise ConfigurationError(
            f"{type(self).__name__} does not support marker selection ({marker!r})"
        )

    def copy(self) -> "GenomeBase":
        """Return an independent copy sharing the same random generator."""
        duplicate = object.__new__(type(self))
        duplicate.__dict__.update(self.__dict__)
        duplicate.genes = list(self.genes)
        return duplicate

    def is_equal(self, other: Sequence[Any]) -> bool:
        """True when ``other`` has the same values at the same positions."""
        if len(self.genes) != len(other):
            return False
        return all(gene == other[i] for i, gene in enumerate(self.genes))

    def how_similar(self, other: Sequence[Any]) -> float:
        """
        Share of positions holding the same gene in both sequences.

        The count of equal positions is divided by the longer of the two
        lengths. Two empty sequences are identical.

        Example:
            >>> Genome([0.1, 0.2, 0.3]).how_similar([0.1, 0.2, 0.2, 0.3])
            0.5
        """
        longest = max(len(self.genes), len(other))
        if longest == 0:
            return 1.0
        shared = sum(
            1 for i, gene in enumerate(self.genes)
            if i < len(other) and other[i] == gene
        )
        return shared / longest

    def to_list(self) -> List[Any]:
        """Plain list form of the genes, suitable for JSON."""
        return list(self.genes)

    # Genetic operators

    def mutate(
        self,
        spec: Union[Dict, List[Dict], None] = None,
        modify: bool = True,
        upper: Optional[int] = None,
        lower: Optional[int] = 1,
        callback: Optional[Callable] = None
    ) -> "GenomeBase":
        """
        Apply a mutation or a pipeline of mutations.

        Args:
            spec: Mutation mapping ``{'name', 'selection', 'params'}`` or a
                list of them applied in order. A single mapping may also set
                ``modify``, ``upper`` and ``lower``.
            modify: Mutate this genome (True) or a copy (False)
            upper: Truncate to this size after the pipeline
            lower: Grow to this size after the pipeline; also the floor for
                deletion
            callback: Called as ``callback(op_log, original, mutated)``

        Returns:
            The mutated genome (this one unless ``modify`` is False)

        Raises:
            ConfigurationError: If a mutation name is unknown
        """
        if spec is None:
            steps = []
        elif isinstance(spec, (dict, str)):
            steps = [spec]
        else:
            steps = list(spec)

        if isinstance(spec, dict):
            modify = spec.get('modify', modify)
            upper = spec.get('upper', upper)
            lower = spec.get('lower', lower)

        original = self.copy() if callback is not None else None
        genome = self if modify else self.copy()

        op_log = []
        for step in steps:
            if isinstance(step, str):
                step = {'name': step}
            if 'name' not in step:
                raise ConfigurationError(f"Mutation spec requires a 'name': {step!r}")

            operator = resolve_mutation(step['name'], genome.mutations)
            params = {
                'lower': step.get('lower', lower),
                'upper': step.get('upper', upper),
            }
            params.update(step.get('params') or {})
            selected = genome.selection(step.get('selection'))
            op_log.extend(operator(genome, selected, params))

        if upper is not None and len(genome) > upper:
            genome.size = upper
        if lower is not None and len(genome) < lower:
            genome.size = lower

        if callback is not None:
            callback(op_log, original, genome)

        return genome

    def crossover(
        self,
        spec: Any = None,
        *mates: Union["GenomeBase", Sequence["GenomeBase"]],
        callback: Optional[Callable] = None
    ) -> "GenomeBase":
        """
        Create a child from this genome and one or more mates.

        Args:
            spec: Selection spec for the positions taken from mates, or a
                mapping with ``name`` ('splice' or 'average'), ``selection``,
                ``modify`` and ``params``. The default selection rate is
                ``1 - 1 / (1 + number_of_mates)``.
            *mates: Mate genomes, or lists of mate genomes
            callback: Called as ``callback(op_log, parents, child)``

        Returns:
            The child genome (a copy unless ``modify`` is requested)

        Raises:
            ConfigurationError: If no mate is given or the operator is unknown
        """
        mate_list: List[GenomeBase] = []
        for mate in mates:
            if isinstance(mate, GenomeBase):
                mate_list.append(mate)
            else:
                mate_list.extend(mate)
        if not mate_list:
            raise ConfigurationError("crossover requires at least one mate")

        options = normalize_crossover_spec(spec, len(mate_list))
        operator = resolve_crossover(options['name'])

        child = self if options['modify'] else self.copy()
        selected = child.selection(options['selection'])
        op_log = operator(child, mate_list, selected, options['params'], self.rng)

        if callback is not None:
            callback(op_log, [self] + mate_list, child)

        return child


class Genome(GenomeBase):
    """
    Genome of real-valued genes in [0, 1].

    Example:
        >>> genome = Genome(4, rng=np.random.default_rng(0))
        >>> len(genome)
        4
        >>> genome.mutate({'name': 'duplication', 'selection': 1}).size
        8
    """

    mutations = UNIT_MUTATIONS

    def random_gene(self) -> float:
        return float(self.rng.random())

    def _coerce(self, gene: Any) -> float:
        try:
            value = float(gene)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Gene must be a number in [0, 1], got {gene!r}")
        if not 0.0 <= value <= 1.0:
            raise ConfigurationError(f"Gene must be a number in [0, 1], got {gene!r}")
        return value


class UnitVectorGenome(GenomeBase):
    """
    Genome of fixed-dimension vectors with components in [0, 1].

    The dimension is taken from the first gene when genes are given,
    otherwise from ``dimension`` (default 3).
    """

    mutations = VECTOR_MUTATIONS

    def __init__(
        self,
        genes: Union[int, Sequence[Sequence[float]], None] = None,
        dimension: int = 3,
        rng: Optional[np.random.Generator] = None
    ):
        if genes is not None and not isinstance(genes, numbers.Integral) and len(genes) > 0:
            dimension = len(genes[0])
        self.dimension = dimension
        super().__init__(genes, rng)

    @property
    def dimension(self) -> int:
        return self._dimension

    @dimension.setter
    def dimension(self, dimension: int) -> None:
        if isinstance(dimension, bool) or not isinstance(dimension, numbers.Integral) or dimension < 1:
            raise ConfigurationError(f"Dimension must be a positive integer, got {dimension!r}")
        self._dimension = int(dimension)

    def random_gene(self) -> tuple:
        return tuple(float(x) for x in self.rng.random(self._dimension))

    def _coerce(self, gene: Any) -> tuple:
        try:
            vector = tuple(float(x) for x in gene)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Gene must be a vector of numbers, got {gene!r}")
        if len(vector) != self._dimension:
            raise ConfigurationError(
                f"Gene {gene!r} does not match dimension {self._dimension}"
            )
        if any(not 0.0 <= x <= 1.0 for x in vector):
            raise ConfigurationError(f"Gene components must be in [0, 1], got {gene!r}")
        return vector

    def to_list(self) -> List[List[float]]:
        return [list(gene) for gene in self.genes]


class Epigenome(GenomeBase):
    """
    Which decoder region reads which genome position.

    Each position holds a marker string. Markers are drawn from
    ``alphabet`` when the epigenome grows or is substituted, and
    ``compile`` groups genome values by marker.

    Example:
        >>> epigenome = Epigenome(['A', 'B', 'B', 'A'])
        >>> epigenome.compile([0.0, 0.5, 0.5, 1.0])
        {'A': [0.0, 1.0], 'B': [0.5, 0.5]}
        >>> epigenome.selection('B')
        [1, 2]
    """

    mutations = EPIGENOME_MUTATIONS

    def __init__(
        self,
        genes: Union[int, Sequence[str], None] = None,
        alphabet: Optional[Sequence[str]] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.alphabet = [] if alphabet is None else alphabet
        super().__init__(genes, rng)

    @property
    def alphabet(self) -> List[str]:
        """Unique markers, those in use first, then the configured ones."""
        return list(dict.fromkeys(list(self.genes) + list(self._alphabet)))

    @alphabet.setter
    def alphabet(self, alphabet: Sequence[str]) -> None:
        if isinstance(alphabet, (str, bytes)) or not isinstance(alphabet, (list, tuple)):
            raise ConfigurationError(f"Alphabet must be a list of markers, got {alphabet!r}")
        self._alphabet = list(alphabet)

    def random_gene(self) -> str:
        if not self._alphabet:
            raise ConfigurationError("Epigenome alphabet is empty; cannot draw a marker")
        return self._alphabet[int(self.rng.integers(0, len(self._alphabet)))]

    def _select_marker(self, marker: str) -> List[int]:
        return [position for position, gene in enumerate(self.genes) if gene == marker]

    def copy(self, deep: bool = False) -> "Epigenome":
        """Copy the epigenome; ``deep`` also copies the alphabet list."""
        duplicate = super().copy()
        duplicate._alphabet = list(self._alphabet) if deep else self._alphabet
        return duplicate

    def compile(self, genome: Sequence[Any]) -> Dict[str, List[Any]]:
        """
        Group genome values by the marker at the same position.

        Positions beyond the end of ``genome`` are skipped.

        Args:
            genome: Genome (or plain sequence) to read values from

        Returns:
            Mapping of marker to the list of values it reads, in position order
        """
        arguments: Dict[str, List[Any]] = {}
        for position, marker in enumerate(self.genes):
            if position >= len(genome):
                break
            arguments.setdefault(marker, []).append(genome[position])
        return arguments
