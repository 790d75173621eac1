"""
Orchestration module for genex.

Runs a population through repeated generation passes, reports progress and
persists the run history.
"""

from typing import Any, Callable, Dict, List, Optional
from pathlib import Path
from datetime import datetime
import numpy as np

from .config_loader import (
    load_config,
    validate_config,
    resolve_seed,
    create_population_from_config,
    create_generation_from_config,
)
from .data_models import GenerationRecord
from .io_utils import save_history_log, save_population
from .population import Population


def record_generation(population: Population, fitness: Any, compare: Optional[Callable] = None) -> GenerationRecord:
    """Snapshot population statistics as a GenerationRecord."""
    stats = population.statistics(fitness, compare)
    return GenerationRecord(
        generation=population.generation,
        population_size=stats['size'],
        best=stats['best'],
        mean=stats['mean'],
        worst=stats['worst'],
        timestamp=datetime.now().isoformat(),
    )


def run_evolution(
    population: Population,
    generation: Callable,
    generations: int,
    fitness: Any = None,
    progress_every: int = 0,
    on_generation: Optional[Callable[[Population, GenerationRecord], None]] = None
) -> List[GenerationRecord]:
    """
    Evolve a population for a number of generations.

    Args:
        population: Population to evolve in place
        generation: Generation strategy (e.g. TournamentGeneration)
        generations: Number of passes
        fitness: Fitness used for the history (defaults to the strategy's)
        progress_every: Print progress every N generations (0 disables)
        on_generation: Called after every pass with the new record

    Returns:
        History records, the initial state first
    """
    if fitness is None:
        fitness = generation.fitness
    compare = getattr(generation, 'compare', None)

    history = [record_generation(population, fitness, compare)]

    for i in range(generations):
        population.evolve(generation)
        record = record_generation(population, fitness, compare)
        history.append(record)

        if on_generation is not None:
            on_generation(population, record)

        # Progress reporting
        if progress_every and ((i + 1) % progress_every == 0 or i + 1 == generations):
            print(f"  Progress: {i+1}/{generations} generations (best={record.best}, "
                  f"size={record.population_size})")

    return history


def run_from_config(config_path: str, rng: Optional[np.random.Generator] = None) -> Dict[str, Any]:
    """
    Run an evolution described by a YAML configuration.

    Args:
        config_path: Path to the run configuration
        rng: Random number generator (defaults to one seeded from config)

    Returns:
        Dictionary with 'population', 'history' and, when an output root
        is configured, 'history_log' and 'population_file' paths
    """
    print("=" * 70)
    print("EVOLUTION RUN")
    print("=" * 70)

    print(f"Loading config from: {config_path}")
    config = validate_config(load_config(config_path))

    if rng is None:
        seed = resolve_seed(config)
        print(f"Random seed: {seed}")
        rng = np.random.default_rng(seed)

    population = create_population_from_config(config, rng)
    generation = create_generation_from_config(config)

    run_config = config.get('run') or {}
    generations = run_config.get('generations', 1)
    progress_every = run_config.get('progress_every', 0)

    print(f"Population size: {len(population)}")
    print(f"Evolving for {generations} generations...")
    print()

    history = run_evolution(population, generation, generations, progress_every=progress_every)

    result: Dict[str, Any] = {'population': population, 'history': history}

    output_config = config.get('output') or {}
    if output_config.get('root'):
        output_root = Path(output_config['root'])
        overwrite = output_config.get('overwrite', False)
        result['history_log'] = save_history_log(history, output_root / 'history_log.csv', overwrite)
        result['population_file'] = save_population(population, output_root / 'population.yaml', overwrite)

    # Summary
    print()
    print("=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"Generations: {population.generation}")
    print(f"Initial best: {history[0].best}")
    print(f"Final best: {history[-1].best}")
    if 'history_log' in result:
        print(f"History log: {result['history_log']}")
        print(f"Population file: {result['population_file']}")

    return result
