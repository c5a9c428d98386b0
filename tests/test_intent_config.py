import json

import pytest

from analytics.errors import PolicyConfigError
from analytics.intent_config import IntentConfig, load_intent_config
from analytics.models import SignalType


def test_defaults():
    config = IntentConfig()

    assert config.variant_exploration_cap == 2
    assert config.rolling_window_seconds == 600
    assert config.combo_window_seconds == 300
    assert (config.thresholds.medium, config.thresholds.strong, config.thresholds.very_strong) == (4, 7, 10)
    assert config.combo_minimum_score == 7
    assert config.score_for(SignalType.EXPLICIT_QUERY) == 5
    assert "size guide" in config.keywords.fit


def test_no_file_means_defaults():
    assert load_intent_config(None) == IntentConfig()


def test_partial_policy_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps({
        "variant_exploration_cap": 3,
        "signal_scores": {"REVISIT": 2},
        "keywords": {"return": ["Money Back"]},
    }))

    config = load_intent_config(str(path))

    assert config.variant_exploration_cap == 3
    assert config.score_for(SignalType.REVISIT) == 2
    assert config.score_for(SignalType.SIZE_CONTENT_INTERACTION) == 4
    assert config.keywords.return_ == ["money back"]
    assert config.keywords.fit == IntentConfig().keywords.fit


@pytest.mark.parametrize("payload", [
    {"thresholds": {"medium": 7, "strong": 7, "very_strong": 10}},
    {"combo_window_seconds": 900},
    {"variant_exploration_cap": -1},
    {"signal_scores": {"NOT_A_SIGNAL": 3}},
])
def test_invalid_policy_is_rejected(tmp_path, payload):
    path = tmp_path / "policy.json"
    path.write_text(json.dumps(payload))

    with pytest.raises(PolicyConfigError):
        load_intent_config(str(path))


def test_missing_policy_file(tmp_path):
    with pytest.raises(PolicyConfigError):
        load_intent_config(str(tmp_path / "nope.json"))
