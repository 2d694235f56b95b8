from pathlib import Path

# ==================================================================================== #
# SETTINGS
# ==================================================================================== #
# Go up two levels 
DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "references" / "config.yaml"
DEFAULT_OUTPUT_DIR = Path("results")
DEFAULT_LOG_DIR = Path("logs")

# ==================================================================================== #
# INPUT TABLES
# ==================================================================================== #
DEFAULT_SEP = '\t'
# Tokens in the combined taxonomy column that mean "no label at this rank"
MISSING_TOKENS = {'', 'NA', 'na', 'nan', 'NaN', 'None'}
DEFAULT_DUPLICATES = 'raise'
DUPLICATE_POLICIES = ('raise', 'sum')

# ==================================================================================== #
# TAXONOMY
# ==================================================================================== #
TAXONOMIC_RANKS = [
    'Domain', 'Phylum', 'Class', 'Order', 'Family', 'Genus', 'Species'
]
DEFAULT_TAXONOMY_DELIMITER = '; '
DEFAULT_NA_REP = 'NA'
UNCLASSIFIED_KEY = 'Unclassified'

DEFAULT_RANK = 'Phylum'
DEFAULT_MISSING_POLICY = 'merge'
MISSING_POLICIES = ('merge', 'prefix', 'drop')

# ==================================================================================== #
# RELATIVE ABUNDANCE
# ==================================================================================== #
PERCENT_SCALE: float = 100.0
REPLICATE_COLUMN = 'n_replicates'

# ==================================================================================== #
# LOW-ABUNDANCE BUCKETING
# ==================================================================================== #
DEFAULT_ABUNDANCE_THRESHOLD: float = 1.0
DEFAULT_UNASSIGNED_LABEL = 'Unassigned'
DEFAULT_CATEGORY_COLUMN = 'Category'
SAMPLE_COLUMN = 'Sample'
TAXON_COLUMN = 'OTU'
ABUNDANCE_COLUMN = 'Abundance'

# ==================================================================================== #
# BETA DIVERSITY
# ==================================================================================== #
DEFAULT_METRIC = 'braycurtis'
METRIC_ALIASES = {'bray': 'braycurtis', 'bray-curtis': 'braycurtis'}
DEFAULT_ORDINATION = 'NMDS'
ORDINATION_METHODS = ('NMDS', 'PCoA')
DEFAULT_N_COMPONENTS = 2
DEFAULT_MIN_SAMPLES = 3
DEFAULT_RANDOM_STATE = 0
DEFAULT_N_INIT = 4
DEFAULT_MAX_ITER = 300

# ==================================================================================== #
# FIGURES
# ==================================================================================== #
DEFAULT_HEIGHT = 1000
DEFAULT_WIDTH = 1100
DEFAULT_SAVE_AS = ['html']
BUCKET_COLOR = '#b3b3b3'
UNASSIGNED_COLOR = '#5c5c5c'
