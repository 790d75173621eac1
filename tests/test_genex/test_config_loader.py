"""
Tests for configuration loading, validation and multi-generation runs.
"""

import unittest
import tempfile
import shutil
from pathlib import Path

import numpy as np
import yaml

from genex.config_loader import (
    ConfigurationError,
    load_config,
    find_config_issues,
    validate_config,
    create_population_from_config,
    create_generation_from_config,
)
from genex.generation import TournamentGeneration
from genex.genome import Genome, UnitVectorGenome
from genex.io_utils import load_history_log, load_population
from genex.orchestration import run_evolution, run_from_config
from genex.selection import FITNESS_FUNCTIONS, register_fitness


def gene_total(member, group):
    return sum(member.genome.genes)


def base_config():
    return {
        'random_seed': 42,
        'population': {
            'size': 12,
            'genome': {'type': 'genome', 'length': 5},
            'mutation': {'name': 'substitution', 'selection': 0.2},
        },
        'generation': {'fitness': 'gene_total', 'groups': 3, 'elites': 1},
        'run': {'generations': 4},
    }


class TestLoadConfig(unittest.TestCase):
    """Test reading configuration files."""

    def setUp(self):
        """Create temporary directory for test files."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir)

    def test_load_valid(self):
        """Test a YAML mapping loads as a dictionary."""
        path = Path(self.temp_dir) / "config.yaml"
        path.write_text(yaml.safe_dump(base_config()))

        self.assertEqual(load_config(str(path)), base_config())

    def test_missing_file(self):
        """Test a missing file raises ConfigurationError."""
        with self.assertRaises(ConfigurationError):
            load_config(str(Path(self.temp_dir) / "missing.yaml"))

    def test_invalid_yaml(self):
        """Test malformed YAML raises ConfigurationError."""
        path = Path(self.temp_dir) / "broken.yaml"
        path.write_text("population: [unclosed\n")

        with self.assertRaises(ConfigurationError):
            load_config(str(path))

    def test_non_mapping_root(self):
        """Test a YAML list at the root is rejected."""
        path = Path(self.temp_dir) / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with self.assertRaises(ConfigurationError):
            load_config(str(path))


class TestValidateConfig(unittest.TestCase):
    """Test configuration validation."""

    def test_valid(self):
        """Test the base configuration has no issues."""
        self.assertEqual(find_config_issues(base_config()), [])
        self.assertEqual(validate_config(base_config()), base_config())

    def test_missing_sections(self):
        """Test missing required sections are reported."""
        issues = find_config_issues({})

        self.assertIn("Missing required section: population", issues)
        self.assertIn("Missing required section: generation", issues)

    def test_bad_values(self):
        """Test every invalid value is reported at once."""
        config = base_config()
        config['population']['size'] = 0
        config['population']['genome']['type'] = 'tree'
        config['generation']['elites'] = 0
        config['generation']['group_size'] = 4

        issues = find_config_issues(config)

        self.assertEqual(len(issues), 4)
        with self.assertRaises(ConfigurationError):
            validate_config(config)

    def test_missing_fitness(self):
        """Test the generation section requires a fitness."""
        config = base_config()
        del config['generation']['fitness']

        self.assertIn("generation.fitness is required", find_config_issues(config))


class TestFactories(unittest.TestCase):
    """Test building objects from configuration."""

    def setUp(self):
        register_fitness('gene_total', gene_total)

    def tearDown(self):
        del FITNESS_FUNCTIONS['gene_total']

    def test_create_population(self):
        """Test the population matches the configured size and genome."""
        population = create_population_from_config(base_config(), np.random.default_rng(42))

        self.assertEqual(len(population), 12)
        for member in population:
            self.assertIsInstance(member.genome, Genome)
            self.assertEqual(len(member.genome), 5)
            self.assertEqual(member.mutation['selection'], 0.2)

    def test_create_vector_population(self):
        """Test unit vector genomes take the configured dimension."""
        config = base_config()
        config['population']['genome'] = {'type': 'unit_vector', 'length': 3, 'dimension': 2}
        population = create_population_from_config(config, np.random.default_rng(42))

        self.assertIsInstance(population[0].genome, UnitVectorGenome)
        self.assertEqual(population[0].genome.dimension, 2)

    def test_seeded_population_is_reproducible(self):
        """Test the configured seed reproduces the same members."""
        first = create_population_from_config(base_config())
        second = create_population_from_config(base_config())

        self.assertEqual(
            [member.genome.to_list() for member in first],
            [member.genome.to_list() for member in second],
        )

    def test_create_generation(self):
        """Test the generation strategy resolves its fitness by name."""
        generation = create_generation_from_config(base_config())

        self.assertIsInstance(generation, TournamentGeneration)
        self.assertIs(generation.fitness, gene_total)
        self.assertEqual(generation.groups, 3)

    def test_create_generation_unknown_fitness(self):
        """Test an unregistered fitness fails at construction."""
        config = base_config()
        config['generation']['fitness'] = 'nope'

        with self.assertRaises(ConfigurationError):
            create_generation_from_config(config)


class TestOrchestration(unittest.TestCase):
    """Test multi-generation runs."""

    def setUp(self):
        """Create temporary directory and register the test fitness."""
        self.temp_dir = tempfile.mkdtemp()
        register_fitness('gene_total', gene_total)

    def tearDown(self):
        """Clean up temporary directory and fitness registry."""
        shutil.rmtree(self.temp_dir)
        del FITNESS_FUNCTIONS['gene_total']

    def test_run_evolution_history(self):
        """Test one record per generation plus the initial state."""
        population = create_population_from_config(base_config(), np.random.default_rng(1))
        generation = create_generation_from_config(base_config())
        seen = []

        history = run_evolution(
            population, generation, 3,
            on_generation=lambda pop, record: seen.append(record.generation)
        )

        self.assertEqual(len(history), 4)
        self.assertEqual([record.generation for record in history], [0, 1, 2, 3])
        self.assertEqual(seen, [1, 2, 3])
        self.assertEqual(history[-1].population_size, 12)

    def test_run_from_config_writes_outputs(self):
        """Test a configured run saves its history log and population."""
        config = base_config()
        config['output'] = {'root': str(Path(self.temp_dir) / "run_001")}
        config_path = Path(self.temp_dir) / "config.yaml"
        config_path.write_text(yaml.safe_dump(config))

        result = run_from_config(str(config_path))

        self.assertEqual(result['population'].generation, 4)
        self.assertEqual(len(load_history_log(result['history_log'])), 5)
        self.assertEqual(len(load_population(result['population_file'])), 12)

    def test_run_from_config_refuses_overwrite(self):
        """Test a second run into the same root fails without overwrite."""
        config = base_config()
        config['output'] = {'root': str(Path(self.temp_dir) / "run_002")}
        config_path = Path(self.temp_dir) / "config.yaml"
        config_path.write_text(yaml.safe_dump(config))

        run_from_config(str(config_path))
        with self.assertRaises(FileExistsError):
            run_from_config(str(config_path))

    def test_run_from_invalid_config(self):
        """Test invalid configuration stops the run before evolving."""
        config_path = Path(self.temp_dir) / "config.yaml"
        config_path.write_text(yaml.safe_dump({'population': {'size': 5}}))

        with self.assertRaises(ConfigurationError):
            run_from_config(str(config_path))


if __name__ == '__main__':
    unittest.main()
