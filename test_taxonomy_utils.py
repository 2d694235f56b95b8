"""
Tests for splitting lineage strings into the seven fixed ranks.
"""
# ===================================== IMPORTS ====================================== #

import pandas as pd
import pytest

from workflow_shotgun import constants
from workflow_shotgun.errors import TaxonomyFormatError
from workflow_shotgun.utils.taxonomy_utils import (
    canonical_rank, is_missing, join_taxonomy, lineage_prefix, rank_index,
    split_taxonomy, split_taxonomy_column
)

from conftest import ACIDO, BSUB, ECOLI, UNASSIGNED

# ====================================== TESTS ======================================= #

def test_split_full_lineage():
    labels = split_taxonomy(BSUB)
    assert dict(zip(constants.TAXONOMIC_RANKS, labels)) == {
        'Domain': 'Bacteria',
        'Phylum': 'Firmicutes',
        'Class': 'Bacilli',
        'Order': 'Bacillales',
        'Family': 'Bacillaceae',
        'Genus': 'Bacillus',
        'Species': 'Bacillus subtilis',
    }


def test_split_single_label_is_padded():
    assert split_taxonomy(UNASSIGNED) == ['Unassigned'] + [None] * 6


def test_split_na_tokens_become_missing():
    assert split_taxonomy(ACIDO) == ['Bacteria', 'Acidobacteria'] + [None] * 5
    assert split_taxonomy('Bacteria;;Bacilli') == ['Bacteria', None, 'Bacilli'] + [None] * 4


def test_split_strips_whitespace_and_trailing_delimiter():
    assert split_taxonomy('Bacteria ;Firmicutes ; ') == ['Bacteria', 'Firmicutes'] + [None] * 5
    assert split_taxonomy(BSUB + ';') == split_taxonomy(BSUB)


def test_split_too_many_labels():
    with pytest.raises(TaxonomyFormatError, match="8 labels"):
        split_taxonomy(BSUB + '; strain 168')


def test_split_missing_string():
    assert split_taxonomy(None) == [None] * 7
    assert split_taxonomy('NA') == [None] * 7


@pytest.mark.parametrize("taxonomy", [BSUB, ECOLI, ACIDO])
def test_join_inverts_split(taxonomy):
    assert join_taxonomy(split_taxonomy(taxonomy)) == taxonomy


def test_split_column_keeps_index():
    series = pd.Series([BSUB, UNASSIGNED], index=['a', 'b'])
    df = split_taxonomy_column(series)
    assert list(df.columns) == constants.TAXONOMIC_RANKS
    assert list(df.index) == ['a', 'b']
    assert df.loc['a', 'Genus'] == 'Bacillus'
    assert df.loc['b', 'Domain'] == 'Unassigned'
    assert pd.isna(df.loc['b', 'Phylum'])


def test_split_column_names_every_bad_row():
    series = pd.Series([BSUB + '; x', ECOLI, ECOLI + '; y'], index=['bad1', 'ok', 'bad2'])
    with pytest.raises(TaxonomyFormatError) as excinfo:
        split_taxonomy_column(series)
    message = str(excinfo.value)
    assert 'bad1' in message and 'bad2' in message
    assert "'ok'" not in message


def test_rank_lookup():
    assert rank_index('Domain') == 0
    assert rank_index('genus') == 5
    assert canonical_rank('SPECIES') == 'Species'
    with pytest.raises(ValueError, match="Invalid rank"):
        rank_index('Kingdom')


def test_is_missing():
    for value in (None, float('nan'), pd.NA, '', 'NA', ' nan ', 'None'):
        assert is_missing(value)
    for value in ('Bacteria', 0, 'NAcl'):
        assert not is_missing(value)


def test_lineage_prefix():
    taxonomy = split_taxonomy_column(pd.Series([BSUB, ACIDO], index=[BSUB, ACIDO]))
    prefixes = lineage_prefix(taxonomy, 'Class')
    assert prefixes[BSUB] == 'Bacteria; Firmicutes; Bacilli'
    assert prefixes[ACIDO] == 'Bacteria; Acidobacteria; NA'
