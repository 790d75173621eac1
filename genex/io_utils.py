"""
I/O utilities for genex.

Handles genome string serialization, population snapshots (YAML) and
generation history logs (CSV).
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from datetime import datetime
import numpy as np
import yaml

from .data_models import Individual, GenerationRecord, PhenotypeDecoder
from .genome import GenomeBase, Genome, UnitVectorGenome, Epigenome
from .population import Population

GENOME_CLASSES = {
    'genome': Genome,
    'unit_vector': UnitVectorGenome,
    'epigenome': Epigenome,
}

HISTORY_FIELDS = ['generation', 'population_size', 'best', 'mean', 'worst', 'timestamp']


def genome_type_name(genome: GenomeBase) -> str:
    """Registry name of a genome's class."""
    for name, cls in GENOME_CLASSES.items():
        if type(genome) is cls:
            return name
    raise ValueError(f"Unsupported genome type: {type(genome).__name__}")


def stringify_genome(genome: GenomeBase) -> str:
    """
    Serialize a genome's genes as a JSON array.

    Vector genomes become arrays of arrays.

    Example:
        >>> stringify_genome(Genome([0.25, 0.5]))
        '[0.25, 0.5]'
    """
    return json.dumps(genome.to_list())


def parse_genome(
    text: str,
    genome_type: Optional[str] = None,
    rng: Optional[np.random.Generator] = None
) -> GenomeBase:
    """
    Parse a genome produced by ``stringify_genome``.

    Args:
        text: JSON array of genes
        genome_type: 'genome', 'unit_vector' or 'epigenome'; inferred from
            the first gene when omitted
        rng: Random number generator for the new genome

    Returns:
        Genome instance

    Raises:
        ValueError: If the text is not a JSON array or the type is unknown
    """
    try:
        genes = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid genome string: {e}")

    if not isinstance(genes, list):
        raise ValueError(f"Genome string must hold a JSON array, got {type(genes).__name__}")

    if genome_type is None:
        if genes and isinstance(genes[0], list):
            genome_type = 'unit_vector'
        elif genes and isinstance(genes[0], str):
            genome_type = 'epigenome'
        else:
            genome_type = 'genome'

    if genome_type not in GENOME_CLASSES:
        raise ValueError(f"Unknown genome type: {genome_type}")

    return GENOME_CLASSES[genome_type](genes, rng=rng)


def individual_to_dict(individual: Individual) -> Dict[str, Any]:
    """
    Convert an Individual to a YAML-serializable dictionary.

    The decoder is not serialized.
    """
    record = {
        'id': individual.id,
        'genome_type': genome_type_name(individual.genome),
        'genes': individual.genome.to_list(),
        'mutation': individual.mutation,
        'crossover': individual.crossover,
        'metadata': individual.metadata,
    }
    if isinstance(individual.genome, UnitVectorGenome):
        record['dimension'] = individual.genome.dimension
    if individual.epigenome is not None:
        record['epigenome'] = {
            'genes': individual.epigenome.to_list(),
            'alphabet': list(individual.epigenome._alphabet),
        }
    return record


def individual_from_dict(
    record: Dict[str, Any],
    rng: Optional[np.random.Generator] = None,
    decoder: Optional[PhenotypeDecoder] = None
) -> Individual:
    """
    Rebuild an Individual from ``individual_to_dict`` output.

    Raises:
        ValueError: If required keys are missing
    """
    if 'id' not in record or 'genes' not in record:
        raise ValueError(f"Member record requires 'id' and 'genes': {record!r}")

    genome_type = record.get('genome_type', 'genome')
    if genome_type == 'unit_vector':
        genome = UnitVectorGenome(record['genes'], dimension=record.get('dimension', 3), rng=rng)
    elif genome_type in GENOME_CLASSES:
        genome = GENOME_CLASSES[genome_type](record['genes'], rng=rng)
    else:
        raise ValueError(f"Unknown genome type: {genome_type}")

    epigenome = None
    if record.get('epigenome') is not None:
        epigenome = Epigenome(
            record['epigenome'].get('genes', []),
            alphabet=record['epigenome'].get('alphabet', []),
            rng=rng,
        )

    return Individual(
        genome=genome,
        mutation=record.get('mutation'),
        crossover=record.get('crossover'),
        epigenome=epigenome,
        decoder=decoder,
        id=record['id'],
        metadata=dict(record.get('metadata') or {}),
    )


def save_population(
    population: Population,
    output_path: Union[str, Path],
    overwrite: bool = False
) -> Path:
    """
    Save a population snapshot to YAML.

    Args:
        population: Population to save
        output_path: Path for output YAML
        overwrite: If True, overwrite existing file

    Returns:
        Path to saved snapshot

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Population file already exists: {output_path}")

    # Create parent directory if needed
    output_path.parent.mkdir(parents=True, exist_ok=True)

    snapshot = {
        'generation': population.generation,
        'saved_at': datetime.now().isoformat(),
        'members': [individual_to_dict(member) for member in population.members],
    }
    with open(output_path, 'w') as f:
        yaml.safe_dump(snapshot, f, default_flow_style=False, sort_keys=False)

    return output_path


def load_population(
    input_path: Union[str, Path],
    rng: Optional[np.random.Generator] = None,
    decoder: Optional[PhenotypeDecoder] = None
) -> Population:
    """
    Load a population snapshot written by ``save_population``.

    Args:
        input_path: Path to snapshot YAML
        rng: Random number generator shared by the population and genomes
        decoder: Phenotype decoder attached to every member

    Returns:
        Population with the saved generation number

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the snapshot format is invalid
    """
    input_path = Path(input_path)

    if not input_path.exists():
        raise FileNotFoundError(f"Population file not found: {input_path}")

    with open(input_path, 'r') as f:
        snapshot = yaml.safe_load(f)

    if not isinstance(snapshot, dict) or 'members' not in snapshot:
        raise ValueError(f"Invalid population file {input_path}. Expected a 'members' list")

    if rng is None:
        rng = np.random.default_rng()

    members = [individual_from_dict(record, rng, decoder) for record in snapshot['members'] or []]
    population = Population(members=members, rng=rng)
    population.generation = int(snapshot.get('generation', 0))
    return population


def save_history_log(
    records: List[GenerationRecord],
    output_path: Union[str, Path],
    overwrite: bool = False
) -> Path:
    """
    Save generation records to CSV file.

    Args:
        records: List of GenerationRecord objects
        output_path: Path for output CSV
        overwrite: If True, overwrite existing file

    Returns:
        Path to saved history log

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"History log already exists: {output_path}")

    # Create parent directory if needed
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=HISTORY_FIELDS)
        writer.writeheader()

        for record in records:
            writer.writerow(record.to_dict())

    return output_path


def load_history_log(input_path: Union[str, Path]) -> List[Dict[str, str]]:
    """
    Read a history log back as a list of row dictionaries.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the header is not a history header
    """
    input_path = Path(input_path)

    if not input_path.exists():
        raise FileNotFoundError(f"History log not found: {input_path}")

    with open(input_path, 'r') as f:
        reader = csv.DictReader(f)
        if reader.fieldnames != HISTORY_FIELDS:
            raise ValueError(f"Invalid history log format in {input_path}. Expected columns: {HISTORY_FIELDS}")
        return list(reader)
