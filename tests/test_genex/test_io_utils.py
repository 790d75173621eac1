"""
Tests for I/O utilities.

Tests genome strings, population snapshots and history logging.
"""

import unittest
import tempfile
import shutil
from pathlib import Path

import numpy as np
import yaml

from genex.data_models import Individual, GenerationRecord
from genex.genome import Genome, UnitVectorGenome, Epigenome
from genex.population import Population
from genex.io_utils import (
    stringify_genome,
    parse_genome,
    save_population,
    load_population,
    save_history_log,
    load_history_log,
)


class TestGenomeStrings(unittest.TestCase):
    """Test genome string serialization."""

    def test_unit_genome(self):
        """Test a unit genome survives stringify/parse unchanged."""
        genome = Genome(6, rng=np.random.default_rng(42))
        parsed = parse_genome(stringify_genome(genome))

        self.assertIsInstance(parsed, Genome)
        self.assertEqual(parsed, genome)

    def test_vector_genome(self):
        """Test vector genomes serialize as arrays of arrays."""
        genome = UnitVectorGenome([[0.25, 0.5], [1.0, 0.0]])
        text = stringify_genome(genome)

        self.assertEqual(text, '[[0.25, 0.5], [1.0, 0.0]]')
        parsed = parse_genome(text)
        self.assertIsInstance(parsed, UnitVectorGenome)
        self.assertEqual(parsed.genes, genome.genes)

    def test_epigenome_inferred(self):
        """Test marker arrays parse as epigenomes."""
        parsed = parse_genome('["a", "b"]')

        self.assertIsInstance(parsed, Epigenome)
        self.assertEqual(parsed.genes, ['a', 'b'])

    def test_explicit_type(self):
        """Test an explicit type overrides inference."""
        parsed = parse_genome('[]', genome_type='unit_vector')

        self.assertIsInstance(parsed, UnitVectorGenome)
        self.assertEqual(len(parsed), 0)

    def test_malformed(self):
        """Test malformed strings raise ValueError."""
        with self.assertRaises(ValueError):
            parse_genome('[0.1, ')
        with self.assertRaises(ValueError):
            parse_genome('{"genes": [0.1]}')
        with self.assertRaises(ValueError):
            parse_genome('[0.1]', genome_type='tree')


class TestPopulationSnapshots(unittest.TestCase):
    """Test saving and loading populations."""

    def setUp(self):
        """Create temporary directory for test files."""
        self.temp_dir = tempfile.mkdtemp()
        self.rng = np.random.default_rng(42)

    def tearDown(self):
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir)

    def make_population(self):
        members = [
            Individual(genome=Genome(4, rng=self.rng), crossover=0.3),
            Individual(
                genome=UnitVectorGenome(2, dimension=2, rng=self.rng),
                mutation={'name': 'rotate', 'selection': 0.5},
                epigenome=Epigenome(['a', 'b'], alphabet=['a', 'b', 'c']),
                metadata={'parent_ids': ['abc']},
            ),
        ]
        population = Population(members=members, rng=self.rng)
        population.generation = 7
        return population

    def test_save_and_load(self):
        """Test members, configs and generation number are restored."""
        population = self.make_population()
        output_path = Path(self.temp_dir) / "snapshots" / "population.yaml"

        result_path = save_population(population, output_path)
        self.assertTrue(result_path.exists())

        loaded = load_population(result_path, rng=np.random.default_rng(0))

        self.assertEqual(loaded.generation, 7)
        self.assertEqual(len(loaded), 2)
        for original, restored in zip(population, loaded):
            self.assertEqual(restored.id, original.id)
            self.assertEqual(restored.genome, original.genome)
            self.assertEqual(restored.mutation, original.mutation)
            self.assertEqual(restored.crossover, original.crossover)
            self.assertEqual(restored.metadata, original.metadata)

        self.assertIsInstance(loaded[1].genome, UnitVectorGenome)
        self.assertEqual(loaded[1].genome.dimension, 2)
        self.assertEqual(loaded[1].epigenome.genes, ['a', 'b'])
        self.assertEqual(loaded[1].epigenome.alphabet, ['a', 'b', 'c'])

    def test_snapshot_is_plain_yaml(self):
        """Test the snapshot loads with yaml.safe_load."""
        output_path = save_population(self.make_population(), Path(self.temp_dir) / "p.yaml")

        with open(output_path) as f:
            data = yaml.safe_load(f)

        self.assertEqual(data['generation'], 7)
        self.assertEqual(data['members'][0]['genome_type'], 'genome')
        self.assertEqual(data['members'][1]['genome_type'], 'unit_vector')

    def test_overwrite_protection(self):
        """Test saving refuses to overwrite unless asked."""
        output_path = Path(self.temp_dir) / "p.yaml"
        save_population(self.make_population(), output_path)

        with self.assertRaises(FileExistsError):
            save_population(self.make_population(), output_path)

        save_population(self.make_population(), output_path, overwrite=True)

    def test_load_missing(self):
        """Test loading a missing file raises FileNotFoundError."""
        with self.assertRaises(FileNotFoundError):
            load_population(Path(self.temp_dir) / "missing.yaml")

    def test_load_invalid(self):
        """Test a snapshot without members raises ValueError."""
        bad_path = Path(self.temp_dir) / "bad.yaml"
        bad_path.write_text("generation: 1\n")

        with self.assertRaises(ValueError):
            load_population(bad_path)


class TestHistoryLog(unittest.TestCase):
    """Test history log persistence."""

    def setUp(self):
        """Create temporary directory for test files."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir)

    def test_save_history_log(self):
        """Test writing and reading back generation records."""
        records = [
            GenerationRecord(generation=0, population_size=10, best=2, mean=0.5, worst=0, timestamp="t0"),
            GenerationRecord(generation=1, population_size=10, best=[3, 1], mean=None, worst=[0, 0]),
        ]
        log_path = save_history_log(records, Path(self.temp_dir) / "history_log.csv")

        rows = load_history_log(log_path)
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]['best'], '2')
        self.assertEqual(rows[0]['timestamp'], 't0')
        self.assertEqual(rows[1]['best'], '3;1')
        self.assertEqual(rows[1]['mean'], '')

    def test_history_overwrite_protection(self):
        """Test the log refuses to overwrite unless asked."""
        log_path = Path(self.temp_dir) / "history_log.csv"
        save_history_log([], log_path)

        with self.assertRaises(FileExistsError):
            save_history_log([], log_path)

    def test_load_history_invalid_header(self):
        """Test a foreign CSV is rejected."""
        bad_path = Path(self.temp_dir) / "other.csv"
        bad_path.write_text("name,type,x,y\n")

        with self.assertRaises(ValueError):
            load_history_log(bad_path)


if __name__ == '__main__':
    unittest.main()
