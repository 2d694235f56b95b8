"""
End-to-end tests of the command-line pipeline, plus its config and logging setup.
"""
# ===================================== IMPORTS ====================================== #

import logging

import pandas as pd
import pytest
import yaml

from workflow_shotgun.config import get_config, get_section, override
from workflow_shotgun.logger import setup_logging
from workflow_shotgun.run import main, run_pipeline

from conftest import ACIDO, COUNTS, TAXA, counts_text, metadata_text

# ===================================== FIXTURES ===================================== #

@pytest.fixture
def config(tmp_path, write_file):
    return {
        'counts': write_file("counts.tsv", counts_text()),
        'metadata': write_file("metadata.tsv", metadata_text()),
        'output_dir': tmp_path / "results",
        'factor_levels': {'Age': ['Young', 'Old']},
        'rank': 'Phylum',
        'threshold': 1.0,
        'missing_policy': 'merge',
        'ordination': {'methods': ['NMDS', 'PCoA'], 'color_col': 'Age', 'symbol_col': 'Plot'},
        'barplot': {'group_by': None, 'facet_col': 'Age'},
        'figures': {'save_as': ['html']},
    }


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger("workflow_shotgun")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

# ====================================== TESTS ======================================= #

def test_run_pipeline_writes_outputs(config, tmp_path):
    results = run_pipeline(config)
    out = tmp_path / "results"
    for name in ("relative_abundance.tsv", "nmds_braycurtis.tsv",
                 "pcoa_braycurtis.tsv", "phylum_relative_abundance.tsv"):
        assert (out / "tables" / name).exists(), name
    for name in ("nmds_braycurtis.html", "pcoa_braycurtis.html", "phylum_barplot.html"):
        assert (out / "figures" / name).exists(), name

    assert set(results['ordinations']) == {'NMDS', 'PCoA'}
    relative = pd.read_csv(out / "tables" / "relative_abundance.tsv", sep="\t", index_col=0)
    assert relative.loc[ACIDO, 'S1'] == pytest.approx(10.0)
    assert relative.loc[ACIDO, 'S2'] == pytest.approx(0.0)


def test_run_pipeline_group_means(config, tmp_path):
    config['barplot'] = {'group_by': 'Age', 'facet_col': None}
    results = run_pipeline(config)
    composition = results['composition']
    assert set(composition['Sample']) == {'Young', 'Old'}
    assert (tmp_path / "results" / "tables" / "phylum_mean_by_Age.tsv").exists()


def test_run_pipeline_applies_taxonomy_patches(config):
    config['taxonomy_patches'] = [{'taxon': ACIDO, 'rank': 'Class', 'value': 'Acidobacteriia'}]
    results = run_pipeline(config)
    assert results['data'].taxonomy.loc[ACIDO, 'Class'] == 'Acidobacteriia'


def test_main_with_config_file(config, tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({
        'counts': './counts.tsv',
        'metadata': './metadata.tsv',
        'output_dir': './results',
        'log_dir': './logs',
        'ordination': {'methods': ['PCoA'], 'color_col': 'Age'},
        'figures': {'save_as': ['html']},
    }))
    assert main(["--config", str(config_path), "--rank", "Genus", "--threshold", "5"]) == 0
    assert (tmp_path / "results" / "tables" / "genus_relative_abundance.tsv").exists()
    assert (tmp_path / "results" / "figures" / "genus_barplot.html").exists()
    assert any((tmp_path / "logs").glob("*.log"))


def test_main_reports_empty_sample(tmp_path, write_file):
    text = counts_text({**COUNTS, "S2": [0] * len(TAXA)})
    code = main([
        "--counts", str(write_file("counts.tsv", text)),
        "--metadata", str(write_file("metadata.tsv", metadata_text())),
        "--output-dir", str(tmp_path / "results"),
        "--log-dir", str(tmp_path / "logs"),
    ])
    assert code == 1
    log_text = "".join(p.read_text() for p in (tmp_path / "logs").glob("*.log"))
    assert "EmptySampleError" in log_text


def test_get_config_resolves_relative_paths(tmp_path):
    path = tmp_path / "sub" / "config.yaml"
    path.parent.mkdir()
    path.write_text("counts: ../data/counts.tsv\nrank: Genus\nbarplot:\n  facet_col: Age\n")
    config = get_config(path)
    assert config['counts'] == (tmp_path / "data" / "counts.tsv").resolve()
    assert config['rank'] == 'Genus'
    assert get_section(config, 'barplot') == {'facet_col': 'Age'}
    assert get_section(config, 'ordination') == {}


def test_override_skips_unset_values():
    merged = override({'rank': 'Phylum', 'threshold': 1.0}, rank='Genus', threshold=None)
    assert merged == {'rank': 'Genus', 'threshold': 1.0}


def test_setup_logging(tmp_path):
    logger = setup_logging(tmp_path / "logs", log_filename="run.log")
    logger.debug("debug line")
    for handler in logger.handlers:
        handler.flush()
    text = (tmp_path / "logs" / "run.log").read_text()
    assert "debug line" in text
    assert len(logger.handlers) == 2

    setup_logging(tmp_path / "logs", log_filename="run.log")
    assert len(logging.getLogger("workflow_shotgun").handlers) == 2
