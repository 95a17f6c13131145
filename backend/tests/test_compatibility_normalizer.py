import json

import pytest

from astromate.ai.compatibility_prompt import SAMPLE_RESPONSE
from astromate.services.compatibility_normalizer import (
    AmbiguousAspect,
    Aspect,
    DecodeError,
    MalformedTopLevel,
    MissingField,
    Tip,
    TypeMismatch,
    decode_report_text,
    normalize,
    report_to_dict,
)


def _payload(strengths=None, weaknesses=None, tips=None):
    return {
        "Strengths": {"Aspects": strengths if strengths is not None else []},
        "Weaknesses": {"Aspects": weaknesses if weaknesses is not None else []},
        "Tips": tips if tips is not None else [],
    }


def test_normalize_documented_example() -> None:
    raw = json.loads(
        '{"Strengths":{"Aspects":[{"Venus-ruled":"Solid","Description":"Shared love of harmony."}]},'
        '"Weaknesses":{"Aspects":[]},'
        '"Tips":[{"Tip":"Communicate","Description":"Talk often."}]}'
    )

    report = normalize(raw)

    assert report.strengths.aspects == (Aspect(title="Venus-ruled", description="Shared love of harmony."),)
    assert report.weaknesses.aspects == ()
    assert report.tips == (Tip(tip="Communicate", description="Talk often."),)


def test_normalize_preserves_cardinality_and_order() -> None:
    strengths = [{f"Strength {index}": "x", "Description": f"s{index}"} for index in range(4)]
    weaknesses = [{"Pace": "Mismatch", "Description": "w0"}, {"Pace": "Mismatch", "Description": "w1"}]
    tips = [{"Tip": f"Tip {index}", "Description": f"t{index}"} for index in range(3)]

    report = normalize(_payload(strengths, weaknesses, tips))

    assert [aspect.title for aspect in report.strengths.aspects] == [
        "Strength 0",
        "Strength 1",
        "Strength 2",
        "Strength 3",
    ]
    # duplicates are kept, not merged
    assert [aspect.description for aspect in report.weaknesses.aspects] == ["w0", "w1"]
    assert len(report.tips) == 3


def test_title_comes_from_key_name_not_value() -> None:
    report = normalize(_payload(strengths=[{"Communication": {"nested": True}, "Description": "Talks well."}]))

    assert report.strengths.aspects[0] == Aspect(title="Communication", description="Talks well.")


def test_fallback_keeps_description_when_no_title_key() -> None:
    report = normalize(_payload(strengths=[{"Description": "Only text."}, {}]))

    assert report.strengths.aspects == (
        Aspect(title="Unknown", description="Only text."),
        Aspect(title="Unknown", description=""),
    )


@pytest.mark.parametrize("missing", ["Strengths", "Weaknesses", "Tips"])
def test_missing_top_level_key_raises_missing_field(missing) -> None:
    raw = _payload()
    del raw[missing]

    with pytest.raises(MissingField) as excinfo:
        normalize(raw)

    assert excinfo.value.path == missing


def test_missing_aspects_array_reports_path() -> None:
    raw = _payload()
    raw["Weaknesses"] = {}

    with pytest.raises(MissingField) as excinfo:
        normalize(raw)

    assert excinfo.value.path == "Weaknesses.Aspects"


def test_missing_description_with_title_key_fails() -> None:
    with pytest.raises(MissingField) as excinfo:
        normalize(_payload(strengths=[{"Balance": "Good", "Description": "ok"}, {"Balance": "Good"}]))

    assert excinfo.value.path == "Strengths.Aspects[1].Description"


def test_wrong_types_raise_type_mismatch() -> None:
    with pytest.raises(TypeMismatch) as excinfo:
        normalize(_payload(strengths=[{"Balance": "Good", "Description": 3}]))
    assert excinfo.value.path == "Strengths.Aspects[0].Description"
    assert excinfo.value.expected == "a string"

    with pytest.raises(TypeMismatch) as excinfo:
        normalize({"Strengths": {"Aspects": {}}, "Weaknesses": {"Aspects": []}, "Tips": []})
    assert excinfo.value.path == "Strengths.Aspects"

    with pytest.raises(TypeMismatch) as excinfo:
        normalize(_payload(tips=[{"Tip": "Listen", "Description": None}]))
    assert excinfo.value.path == "Tips[0].Description"

    with pytest.raises(TypeMismatch):
        normalize(_payload(weaknesses=["not an object"]))


def test_tip_missing_key() -> None:
    with pytest.raises(MissingField) as excinfo:
        normalize(_payload(tips=[{"Description": "No title"}]))

    assert excinfo.value.path == "Tips[0].Tip"


def test_two_title_keys_are_ambiguous_in_strict_mode() -> None:
    raw = _payload(strengths=[{"Zeal": "High", "Balance": "Good", "Description": "Two keys."}])

    with pytest.raises(AmbiguousAspect) as excinfo:
        normalize(raw)
    assert excinfo.value.keys == ["Balance", "Zeal"]

    report = normalize(raw, strict=False)
    assert report.strengths.aspects[0].title == "Balance"


def test_non_object_payload_is_malformed() -> None:
    with pytest.raises(MalformedTopLevel):
        normalize(["Strengths"])


def test_decode_report_text_handles_fences_and_invalid_json() -> None:
    text = "```json\n" + json.dumps(_payload(tips=[{"Tip": "Rest", "Description": "Sleep."}])) + "\n```"
    assert decode_report_text(text).tips == (Tip(tip="Rest", description="Sleep."),)

    with pytest.raises(MalformedTopLevel):
        decode_report_text("Here is your analysis: great match!")


def test_decode_report_text_keeps_backticks_inside_strings() -> None:
    strengths = [{"Hobbies": 1, "Description": "They both write ```code``` together."}]
    report = decode_report_text(json.dumps(_payload(strengths=strengths)))

    assert report.strengths.aspects == (
        Aspect(title="Hobbies", description="They both write ```code``` together."),
    )

    fenced = "```\n" + json.dumps(_payload(strengths=strengths)) + "\n```"
    assert decode_report_text(fenced).strengths.aspects[0].description == "They both write ```code``` together."


def test_decode_errors_share_base_class() -> None:
    for error in (MissingField("Tips"), TypeMismatch("Tips", "an array"), MalformedTopLevel("bad")):
        assert isinstance(error, DecodeError)


def test_sample_response_decodes() -> None:
    report = decode_report_text(SAMPLE_RESPONSE)

    assert [aspect.title for aspect in report.strengths.aspects] == ["Compatibility", "Communication", "Balance"]
    assert [aspect.title for aspect in report.weaknesses.aspects] == [
        "Decision-Making",
        "Social Preferences",
        "Conflict Resolution",
    ]
    assert [tip.tip for tip in report.tips] == ["Enhance Communication", "Find Common Ground", "Compromise"]


def test_report_to_dict_shape() -> None:
    report = normalize(
        _payload(
            strengths=[{"Trust": "Deep", "Description": "Reliable."}],
            tips=[{"Tip": "Plan", "Description": "Make plans."}],
        )
    )

    assert report_to_dict(report) == {
        "strengths": {"aspects": [{"title": "Trust", "description": "Reliable."}]},
        "weaknesses": {"aspects": []},
        "tips": [{"tip": "Plan", "description": "Make plans."}],
    }
