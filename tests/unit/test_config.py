"""
Unit tests for TranslationConfig.
"""

from argparse import Namespace

import pytest

from src.config import (
    ConfigurationError,
    DEFAULT_SOURCE_LANGUAGE,
    TranslationConfig,
)


class TestValidation:
    """Test rejection of out-of-range values."""

    @pytest.mark.parametrize("kwargs", [
        {'max_tokens_per_chunk': 0},
        {'max_tokens_per_chunk': -10},
        {'code_threshold': 1.5},
        {'cjk_to_english_ratio': 0},
        {'english_to_cjk_ratio': -1.0},
        {'max_attempts': 0},
    ])
    def test_invalid_values(self, kwargs):
        """Each invalid value raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            TranslationConfig(**kwargs)

    def test_configuration_error_is_value_error(self):
        """Callers catching ValueError also catch config errors."""
        assert issubclass(ConfigurationError, ValueError)

    def test_small_budget_is_allowed(self):
        """A budget below the recommended range only warns."""
        assert TranslationConfig(max_tokens_per_chunk=10).max_tokens_per_chunk == 10

    def test_prefix_lists_become_tuples(self):
        """Prefix and label lists are stored as tuples."""
        config = TranslationConfig(unwanted_prefixes=["A:"], language_labels=["B:"])
        assert config.unwanted_prefixes == ("A:",)
        assert config.language_labels == ("B:",)


class TestConstructors:
    """Test alternate constructors and serialization."""

    def test_from_dict_ignores_unknown_keys(self):
        """Unknown keys are dropped."""
        config = TranslationConfig.from_dict({'target_language': 'French', 'bogus': 1})
        assert config.target_language == 'French'

    def test_from_cli_args(self):
        """CLI flags map onto config fields."""
        args = Namespace(
            source_lang=None, target_lang='German', model='m', api_endpoint='http://x',
            api_key=None, max_tokens=800, no_protect=True, no_color=True,
        )
        config = TranslationConfig.from_cli_args(args)

        assert config.source_language == DEFAULT_SOURCE_LANGUAGE
        assert config.target_language == 'German'
        assert config.api_key == ''
        assert config.max_tokens_per_chunk == 800
        assert config.protect_patterns is False
        assert config.enable_colors is False

    def test_to_dict_masks_api_key(self):
        """Only the last four characters of the key are shown."""
        data = TranslationConfig(api_key="sk-abcdef1234").to_dict()
        assert data['api_key'] == "***1234"
        assert TranslationConfig(api_key="").to_dict()['api_key'] == ""

    def test_round_trip_through_dict(self):
        """from_dict(to_dict()) keeps the settings other than the key."""
        original = TranslationConfig(target_language="Korean", max_tokens_per_chunk=700, code_threshold=0.6)
        copy = TranslationConfig.from_dict(original.to_dict())

        assert copy.target_language == "Korean"
        assert copy.max_tokens_per_chunk == 700
        assert copy.code_threshold == 0.6
