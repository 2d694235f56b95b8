"""
Shotgun Metagenomics Exploration Pipeline
----------------------------------------------------------------------------------------
Reshapes a combined taxonomy + read count table and a sample metadata table into an
aligned container, then writes relative abundance tables, Bray-Curtis ordinations and
stacked bar plots of community composition.
"""
# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Third-Party Imports
import pandas as pd

# Local Imports
from workflow_shotgun import constants
from workflow_shotgun.config import get_config, get_section, override
from workflow_shotgun.diversity.beta_diversity import ordinate
from workflow_shotgun.errors import ShotgunDataError
from workflow_shotgun.figures.ordination import plot_ordination
from workflow_shotgun.figures.taxa_barplot import plot_taxa_barplot
from workflow_shotgun.logger import setup_logging
from workflow_shotgun.shotgun_data import ShotgunData, assemble
from workflow_shotgun.utils.io import import_counts_tsv, import_metadata_tsv, write_tsv
from workflow_shotgun.utils.table_filtering import bucket_label, bucket_low_abundance, melt
from workflow_shotgun.utils.taxonomy_utils import canonical_rank

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("workflow_shotgun")

pd.set_option('display.max_colwidth', None)

# =================================== MAIN WORKFLOW ================================== #

def load_data(config: Dict) -> ShotgunData:
    """Load both input tables, assemble them and apply manual taxonomy fixes."""
    for key in ('counts', 'metadata'):
        if not config.get(key):
            raise ValueError(f"No '{key}' input path configured")

    taxon_column = config.get('taxon_column', 0)
    sample_column = config.get('sample_column', 0)
    counts = import_counts_tsv(config['counts'], taxon_column=taxon_column)
    metadata = import_metadata_tsv(
        config['metadata'], sample_column=sample_column,
        factor_levels=config.get('factor_levels')
    )
    data = assemble(
        counts, metadata,
        taxon_column=taxon_column,
        sample_column=sample_column,
        delimiter=config.get('delimiter', constants.DEFAULT_TAXONOMY_DELIMITER),
        duplicates=config.get('duplicates', constants.DEFAULT_DUPLICATES)
    )
    for patch in config.get('taxonomy_patches') or []:
        data = data.patch_taxonomy(patch['taxon'], patch['rank'], patch.get('value'))
    return data


def run_ordinations(
    relative: ShotgunData,
    config: Dict,
    output_dir: Path,
    save_as: List[str]
) -> Dict[str, Any]:
    ord_config = get_section(config, 'ordination')
    metric = ord_config.get('metric', constants.DEFAULT_METRIC)
    results = {}
    for method in ord_config.get('methods', [constants.DEFAULT_ORDINATION]):
        result = ordinate(
            relative, method=method, distance=metric,
            random_state=ord_config.get('random_state', constants.DEFAULT_RANDOM_STATE)
        )
        stem = f"{result.method.lower()}_{result.metric}"
        write_tsv(result.coordinates, output_dir / "tables" / f"{stem}.tsv")
        plot_ordination(
            result, relative.metadata,
            color_col=ord_config.get('color_col'),
            symbol_col=ord_config.get('symbol_col'),
            output_path=output_dir / "figures" / stem,
            save_as=save_as
        )
        results[result.method] = result
    return results


def run_barplot(
    relative: ShotgunData,
    config: Dict,
    output_dir: Path,
    save_as: List[str]
) -> pd.DataFrame:
    rank = canonical_rank(config.get('rank', constants.DEFAULT_RANK))
    threshold = float(config.get('threshold', constants.DEFAULT_ABUNDANCE_THRESHOLD))
    bar_config = get_section(config, 'barplot')

    collapsed = relative.collapse_taxa(
        rank, missing=config.get('missing_policy', constants.DEFAULT_MISSING_POLICY)
    )
    write_tsv(collapsed.counts, output_dir / "tables" / f"{rank.lower()}_relative_abundance.tsv")

    x = constants.SAMPLE_COLUMN
    group_by = bar_config.get('group_by')
    if group_by:
        collapsed = collapsed.mean_samples_by(group_by)
        write_tsv(
            collapsed.counts,
            output_dir / "tables" / f"{rank.lower()}_mean_by_{group_by}.tsv"
        )

    long_df = bucket_low_abundance(melt(collapsed), rank, threshold=threshold)
    plot_taxa_barplot(
        long_df,
        x=x,
        facet_col=bar_config.get('facet_col'),
        title=f"{rank} composition",
        sentinel_labels=[bucket_label(threshold), constants.DEFAULT_UNASSIGNED_LABEL],
        output_path=output_dir / "figures" / f"{rank.lower()}_barplot",
        save_as=save_as
    )
    return long_df


def run_pipeline(config: Dict) -> Dict[str, Any]:
    """Run every stage in order; data-integrity errors propagate to the caller."""
    output_dir = Path(config.get('output_dir', constants.DEFAULT_OUTPUT_DIR))
    save_as = get_section(config, 'figures').get('save_as', constants.DEFAULT_SAVE_AS)

    data = load_data(config)
    relative = data.relative_abundance()
    write_tsv(relative.counts, output_dir / "tables" / "relative_abundance.tsv")

    ordinations = run_ordinations(relative, config, output_dir, save_as)
    composition = run_barplot(relative, config, output_dir, save_as)
    logger.info(f"Results written to '{output_dir}'")
    return {
        'data': data,
        'relative': relative,
        'ordinations': ordinations,
        'composition': composition,
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Explore shotgun metagenomic taxonomy tables"
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML configuration file (default: references/config.yaml "
                             "when present)")
    parser.add_argument("--counts", type=Path, help="Combined taxonomy + counts TSV")
    parser.add_argument("--metadata", type=Path, help="Sample metadata TSV")
    parser.add_argument("--output-dir", type=Path, help="Directory for tables and figures")
    parser.add_argument("--log-dir", type=Path, help="Directory for log files")
    parser.add_argument("--rank", choices=constants.TAXONOMIC_RANKS,
                        help="Rank for the stacked bar plot")
    parser.add_argument("--threshold", type=float,
                        help="Percent abundance below which taxa are bucketed")
    parser.add_argument("--missing-policy", choices=constants.MISSING_POLICIES,
                        help="How to aggregate taxa without a label at the chosen rank")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show DEBUG messages on the console")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config_path = args.config
    if config_path is None and constants.DEFAULT_CONFIG.exists():
        config_path = constants.DEFAULT_CONFIG
    config = get_config(config_path) if config_path else {}
    config = override(
        config,
        counts=args.counts,
        metadata=args.metadata,
        output_dir=args.output_dir,
        log_dir=args.log_dir,
        rank=args.rank,
        threshold=args.threshold,
        missing_policy=args.missing_policy,
    )

    setup_logging(
        config.get('log_dir', constants.DEFAULT_LOG_DIR),
        console_level=logging.DEBUG if args.verbose else logging.INFO
    )
    try:
        run_pipeline(config)
    except (ShotgunDataError, FileNotFoundError, ValueError, KeyError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
