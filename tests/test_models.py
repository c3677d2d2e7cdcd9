import pytest

from game_analyzer.models import AnalysisResult, Session, coerce_action


def test_complete_payload_is_taken_as_is():
    action, defaulted = coerce_action(
        {"type": "missile_shot", "success": True, "timestamp": 1200, "targetDistance": 450.5, "missileSpeed": 30},
        sequence=3,
        default_timestamp=99,
    )
    assert defaulted == []
    assert action.type == "missile_shot"
    assert action.success is True
    assert action.timestamp == 1200
    assert action.target_distance == 450.5
    assert action.missile_speed == 30
    assert action.sequence == 3


@pytest.mark.parametrize("bad", ["far", -5, float("nan"), float("inf"), None, True, [1]])
def test_unusable_distance_becomes_zero(bad):
    action, defaulted = coerce_action(
        {"type": "missile_shot", "success": True, "timestamp": 0, "targetDistance": bad},
        sequence=1,
        default_timestamp=0,
    )
    assert action.target_distance == 0
    assert "targetDistance" in defaulted


def test_numeric_strings_are_accepted():
    action, defaulted = coerce_action(
        {"type": "missile_shot", "success": "true", "timestamp": "250", "missileSpeed": "12.5"},
        sequence=1,
        default_timestamp=0,
    )
    assert defaulted == []
    assert action.success is True
    assert action.timestamp == 250
    assert action.missile_speed == 12.5


def test_missing_fields_take_defaults():
    action, defaulted = coerce_action({}, sequence=7, default_timestamp=4321)
    assert action.type == "unknown"
    assert action.success is False
    assert action.timestamp == 4321
    assert action.target_distance == 0
    assert set(defaulted) == {"type", "success", "timestamp"}


def test_actions_are_immutable():
    action, _ = coerce_action({"type": "missile_shot", "success": True, "timestamp": 0}, sequence=1, default_timestamp=0)
    with pytest.raises(AttributeError):
        action.success = False  # type: ignore[misc]


def test_session_duration_only_after_end():
    session = Session(session_id="s", player_id="p", start_time=1000)
    assert session.duration == 0
    session.end_time = 61000
    assert session.duration == 60000


def test_analysis_result_omits_missing_insights():
    result = AnalysisResult(
        skill_level="beginner",
        shooting_style="balanced",
        strengths=["room for improvement"],
        improvements=["keep practicing"],
        score=0,
    )
    assert "aiInsights" not in result.to_dict()
    result.ai_insights = "Aim first."
    assert result.to_dict()["aiInsights"] == "Aim first."
