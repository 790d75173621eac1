"""
Configuration Loading System

Loads YAML run configurations and turns them into populations and
generation strategies.

Expected layout:

    random_seed: 42
    population:
      size: 50
      genome: {type: genome, length: 9}
      mutation: {name: substitution, selection: 0.1}
      crossover: 0.5
    generation:
      fitness: matches
      groups: 10
      elites: 1
    run:
      generations: 200
      progress_every: 20
    output:
      root: output/run_001
      overwrite: false
"""

import yaml
from typing import Dict, List, Any, Optional
import numpy as np


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


GENOME_TYPES = ('genome', 'unit_vector')


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file"""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")
    return config


def find_config_issues(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of issues

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    for section in ("population", "generation"):
        if section not in config:
            issues.append(f"Missing required section: {section}")

    seed = config.get("random_seed")
    if seed is not None and seed != "random" and (isinstance(seed, bool) or not isinstance(seed, int)):
        issues.append("random_seed must be an integer, 'random' or null")

    population = config.get("population") or {}
    size = population.get("size", 0)
    if not isinstance(size, int) or size <= 0:
        issues.append("Population size must be a positive integer")

    genome = population.get("genome") or {}
    genome_type = genome.get("type", "genome")
    if genome_type not in GENOME_TYPES:
        issues.append(f"Unknown genome type: {genome_type} (expected one of {GENOME_TYPES})")
    length = genome.get("length", 0)
    if not isinstance(length, int) or length < 0:
        issues.append("Genome length must be a non-negative integer")
    if genome_type == "unit_vector":
        dimension = genome.get("dimension", 3)
        if not isinstance(dimension, int) or dimension < 1:
            issues.append("Genome dimension must be a positive integer")

    generation = config.get("generation") or {}
    if "generation" in config and not generation.get("fitness"):
        issues.append("generation.fitness is required")
    if generation.get("groups") is not None and generation.get("group_size") is not None:
        issues.append("Specify only one of generation.groups and generation.group_size")
    elites = generation.get("elites", 1)
    if not isinstance(elites, int) or elites < 1:
        issues.append("generation.elites must be a positive integer")

    run = config.get("run") or {}
    generations = run.get("generations", 1)
    if not isinstance(generations, int) or generations < 0:
        issues.append("run.generations must be a non-negative integer")

    return issues


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate configuration.

    Returns:
        The configuration, unchanged

    Raises:
        ConfigurationError: Listing every issue found
    """
    issues = find_config_issues(config)
    if issues:
        raise ConfigurationError(
            "Invalid configuration:\n" + "\n".join(f"  - {issue}" for issue in issues)
        )
    return config


def resolve_seed(config: Dict[str, Any]) -> int:
    """Return the configured seed, drawing a fresh one for null/'random'."""
    seed = config.get("random_seed")
    if seed is None or seed == "random":
        seed = int(np.random.default_rng().integers(0, 2**31))
        print(f"Using random seed: {seed}")
    return int(seed)


def create_population_from_config(
    config: Dict[str, Any],
    rng: Optional[np.random.Generator] = None
):
    """
    Create a Population of random members from the ``population`` section.

    Args:
        config: Full configuration dictionary
        rng: Random number generator (defaults to one seeded from config)

    Returns:
        Population instance
    """
    from .genome import Genome, UnitVectorGenome
    from .data_models import Individual, DEFAULT_MUTATION
    from .population import Population

    if rng is None:
        rng = np.random.default_rng(resolve_seed(config))

    population_config = config.get("population") or {}
    genome_config = population_config.get("genome") or {}
    genome_type = genome_config.get("type", "genome")
    length = genome_config.get("length", 0)

    if genome_type == "genome":
        genome = Genome(length, rng=rng)
    elif genome_type == "unit_vector":
        genome = UnitVectorGenome(length, dimension=genome_config.get("dimension", 3), rng=rng)
    else:
        raise ConfigurationError(f"Unknown genome type: {genome_type}")

    prototype = Individual(
        genome=genome,
        mutation=population_config.get("mutation", dict(DEFAULT_MUTATION)),
        crossover=population_config.get("crossover"),
    )

    return Population(prototype=prototype, size=population_config.get("size"), rng=rng)


def create_generation_from_config(config: Dict[str, Any]):
    """
    Create a TournamentGeneration from the ``generation`` section.

    Raises:
        ConfigurationError: If the fitness function is missing or unknown
    """
    from .generation import TournamentGeneration

    generation_config = dict(config.get("generation") or {})
    return TournamentGeneration(**generation_config)
