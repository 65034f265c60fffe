"""Tests for severity extraction and gate decisions."""

import json

import pytest

from controller.src.models import GateOutcome, ScanCategory, ScanResultEnvelope, WarningType
from controller.src.services.security_gate import (
    evaluate,
    evaluate_images,
    extract_severity,
    map_severity,
    summarize_sarif,
    summarize_sast,
    summarize_sca,
)
from controller.tests.fakes import sast_envelope, sarif, sca_envelope

@pytest.mark.parametrize("value,expected", [
    ("error", "critical"),
    ("CRITICAL", "critical"),
    ("warning", "high"),
    ("high", "high"),
    ("note", "medium"),
    ("moderate", "medium"),
    ("none", "low"),
    (9.8, "critical"),
    ("7.5", "high"),
    (4, "medium"),
    (1.2, "low"),
    (None, "low"),
])
def test_map_severity(value, expected):
    assert map_severity(value) == expected

def test_rule_level_beats_properties():
    issue = {"level": "note", "properties": {"security-severity": "9.1"}}
    rule = {"defaultConfiguration": {"level": "error"}}
    assert extract_severity(issue, rule) == "critical"

def test_issue_level_used_when_rule_has_none():
    assert extract_severity({"level": "warning"}, {}) == "high"

def test_properties_then_tags():
    assert extract_severity({"properties": {"securitySeverity": "8.0"}}) == "high"
    assert extract_severity({}, {"properties": {"tags": ["security", "external/cwe/cwe-89", "critical"]}}) == "critical"
    assert extract_severity({}) == "low"

def test_summarize_sarif_resolves_rules_by_id():
    document = {
        "runs": [{
            "tool": {"driver": {"rules": [
                {"id": "sql-injection", "properties": {"security-severity": "9.8"}},
                {"id": "weak-hash", "properties": {"security-severity": "5.0"}},
            ]}},
            "results": [
                {"ruleId": "sql-injection"},
                {"ruleId": "weak-hash"},
                {"ruleId": "unknown"},
            ],
        }]
    }
    summary = summarize_sarif(json.dumps(document))
    assert (summary.critical, summary.medium, summary.low) == (1, 1, 1)

def test_summarize_sast_adds_up_tools():
    result = {
        "semgrep": {"results": {"sarif_json": sarif("error", "warning")}},
        "codeql": {"results": {"sarif_json": json.loads(sarif("error"))}},
    }
    summary = summarize_sast(result)
    assert summary.critical == 2
    assert summary.high == 1

def test_summarize_sast_falls_back_to_summary_counts():
    result = {"summary": {"severity_counts": {"critical": 3, "low": 2}}}
    summary = summarize_sast(result)
    assert summary.critical == 3
    assert summary.total == 5

def test_summarize_sca_counts_trivy_findings():
    summary = summarize_sca(sca_envelope("CRITICAL", "HIGH", "HIGH", "UNKNOWN").result)
    assert (summary.critical, summary.high, summary.low) == (1, 2, 1)

def test_summarize_sca_uses_breakdown_without_findings():
    summary = summarize_sca({"summary": {"severity_breakdown": {"critical": 0, "high": 4}}})
    assert summary.high == 4

def test_evaluate_without_result_warns_no_analysis():
    decision = evaluate(ScanCategory.SAST, "build", None)
    assert decision.outcome == GateOutcome.WARN
    assert decision.warning_type == WarningType.NO_ANALYSIS

    pending = ScanResultEnvelope(category=ScanCategory.SAST, status="running", result={"x": 1})
    assert evaluate(ScanCategory.SAST, "build", pending).warning_type == WarningType.NO_ANALYSIS

def test_evaluate_critical_warns_and_clean_clears():
    assert evaluate(ScanCategory.SAST, "build", sast_envelope("error")).warning_type == WarningType.CRITICAL_FOUND
    decision = evaluate(ScanCategory.SAST, "build", sast_envelope("warning", "note"))
    assert decision.is_clear
    assert decision.summary.total == 2

def test_evaluate_images_prefers_no_analysis():
    decision = evaluate_images("deploy", {
        "web:1": sca_envelope("CRITICAL"),
        "worker:1": None,
    })
    assert decision.warning_type == WarningType.NO_ANALYSIS
    assert decision.unanalyzed_artifacts == ["worker:1"]
    assert decision.summary.critical == 1

def test_evaluate_images_sums_criticals():
    decision = evaluate_images("deploy", {
        "web:1": sca_envelope("CRITICAL"),
        "worker:1": sca_envelope("CRITICAL", "CRITICAL"),
        "batch:1": sca_envelope("LOW"),
    })
    assert decision.warning_type == WarningType.CRITICAL_FOUND
    assert decision.summary.critical == 3

def test_evaluate_images_all_clean():
    assert evaluate_images("deploy", {"web:1": sca_envelope("LOW")}).is_clear

def test_rule_levels_on_findings_drive_the_decision():
    document = {"runs": [{"results": [
        {"ruleId": "a", "rule": {"level": "error"}},
        {"ruleId": "b", "rule": {"level": "error"}},
        {"ruleId": "c", "rule": {"level": "warning"}},
    ]}]}
    envelope = ScanResultEnvelope(
        category=ScanCategory.SAST,
        result={"codeql": {"results": {"sarif_json": document}}},
    )

    decision = evaluate(ScanCategory.SAST, "build", envelope)

    assert decision.warning_type == WarningType.CRITICAL_FOUND
    assert decision.summary.model_dump() == {"critical": 2, "high": 1, "medium": 0, "low": 0}
