"""
genex: Evolutionary Search Engine

This package evolves populations of genetic sequences toward a
user-supplied fitness through group tournaments, crossover and mutation.

Key Features:
- Genome types for unit reals, unit vectors and epigenome markers
- Name-dispatched mutation and crossover operators, extendable at runtime
- Declarative selection algebra (shuffle, group, size, sort, named)
- Tournament generations with elitism and survival/removal hooks
- Injectable NumPy random generator for reproducible runs

Modules:
- genome: Genetic sequences (GenomeBase, Genome, UnitVectorGenome, Epigenome)
- mutation: Mutation operators and registries
- crossover: Crossover operators and statistics
- selection: Selection algebra, fitness registry and comparisons
- data_models: Core data structures (Individual, GenerationRecord)
- population: Population container and operations
- generation: TournamentGeneration strategy
- config_loader: YAML configuration loading and validation
- io_utils: Genome strings, population snapshots, history logs
- orchestration: Multi-generation runs with progress reporting
"""

__version__ = "0.1.0"

from .config_loader import ConfigurationError
from .genome import GenomeBase, Genome, UnitVectorGenome, Epigenome
from .data_models import Individual, GenerationRecord, PhenotypeDecoder
from .selection import register_fitness, compare_scores, pareto_compare
from .mutation import register_mutation
from .crossover import register_crossover
from .population import Population
from .generation import TournamentGeneration

__all__ = [
    "ConfigurationError",
    "GenomeBase",
    "Genome",
    "UnitVectorGenome",
    "Epigenome",
    "Individual",
    "GenerationRecord",
    "PhenotypeDecoder",
    "register_fitness",
    "compare_scores",
    "pareto_compare",
    "register_mutation",
    "register_crossover",
    "Population",
    "TournamentGeneration",
]
