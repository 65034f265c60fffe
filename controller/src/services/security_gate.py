"""
Security gate evaluation over SAST/SCA scan results.

The gate never blocks: it answers `clear` or `warn`, and proceeding past
a warning is an explicit caller decision.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from controller.src.models import (
    GateDecision,
    ScanCategory,
    ScanResultEnvelope,
    SeveritySummary,
    WarningType,
)

logger = logging.getLogger(__name__)

SEVERITY_WORDS = ("critical", "high", "medium", "low")
PROPERTY_KEYS = ("securitySeverity", "security-severity", "severity")

def map_severity(value: Any) -> str:
    """Map a level, severity word or CVSS score onto a severity bucket."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_score(float(value))

    text = str(value or "").strip().lower()
    try:
        return _from_score(float(text))
    except ValueError:
        pass

    if text in ("error", "critical") or "critical" in text:
        return "critical"
    if text in ("warning", "high") or "high" in text:
        return "high"
    if text in ("note", "medium", "moderate") or "medium" in text:
        return "medium"
    return "low"

def _from_score(score: float) -> str:
    if score >= 9.0:
        return "critical"
    if score >= 7.0:
        return "high"
    if score >= 4.0:
        return "medium"
    return "low"

def _properties_severity(properties: Any) -> Optional[Any]:
    if not isinstance(properties, Mapping):
        return None
    for key in PROPERTY_KEYS:
        if properties.get(key) not in (None, ""):
            return properties[key]
    return None

def _tag_severity(properties: Any) -> Optional[str]:
    if not isinstance(properties, Mapping):
        return None
    tags = properties.get("tags")
    if not isinstance(tags, list):
        return None
    for tag in tags:
        if isinstance(tag, str) and any(word in tag.lower() for word in SEVERITY_WORDS):
            return tag
    return None

def extract_severity(issue: Mapping[str, Any], rule: Optional[Mapping[str, Any]] = None) -> str:
    """
    Severity of one finding: rule level, then properties, then tags.
    Findings with none of them count as low.
    """
    rule = rule if isinstance(rule, Mapping) else issue.get("rule")
    if not isinstance(rule, Mapping):
        rule = {}

    level = rule.get("level") or (rule.get("defaultConfiguration") or {}).get("level") or issue.get("level")
    if isinstance(level, str) and level:
        return map_severity(level)

    for properties in (issue.get("properties"), rule.get("properties")):
        value = _properties_severity(properties)
        if value is not None:
            return map_severity(value)

    for properties in (issue.get("properties"), rule.get("properties")):
        tag = _tag_severity(properties)
        if tag is not None:
            return map_severity(tag)

    return "low"

def _count(severities: Iterable[str]) -> SeveritySummary:
    counts = {word: 0 for word in SEVERITY_WORDS}
    for severity in severities:
        counts[severity] = counts.get(severity, 0) + 1
    return SeveritySummary(**counts)

def summarize_sarif(document: Any) -> SeveritySummary:
    """Count findings of a SARIF document (dict or JSON string)."""
    if isinstance(document, (str, bytes)):
        document = json.loads(document) if document else {}
    if not isinstance(document, Mapping):
        return SeveritySummary()

    severities: List[str] = []
    for run in document.get("runs") or []:
        driver = ((run.get("tool") or {}).get("driver") or {})
        rules = {r.get("id"): r for r in driver.get("rules") or [] if isinstance(r, Mapping)}
        for issue in run.get("results") or []:
            if not isinstance(issue, Mapping):
                continue
            rule = issue.get("rule") if isinstance(issue.get("rule"), Mapping) else rules.get(issue.get("ruleId"))
            severities.append(extract_severity(issue, rule))
    return _count(severities)

def _summary_block(block: Any) -> Optional[SeveritySummary]:
    if not isinstance(block, Mapping):
        return None
    return SeveritySummary(**{word: int(block.get(word) or 0) for word in SEVERITY_WORDS})

def summarize_sast(result: Mapping[str, Any]) -> SeveritySummary:
    """Aggregate findings across every static analyzer in the result."""
    total = SeveritySummary()
    found_sarif = False

    for tool_name, tool_result in result.items():
        if not isinstance(tool_result, Mapping) or not isinstance(tool_result.get("results"), Mapping):
            continue
        sarif = tool_result["results"].get("sarif_json")
        if sarif is None:
            continue
        found_sarif = True
        try:
            total = total + summarize_sarif(sarif)
        except ValueError as e:
            logger.warning(f"Unreadable SARIF from {tool_name}: {e}")

    if not found_sarif:
        fallback = _summary_block((result.get("summary") or {}).get("severity_counts"))
        if fallback is not None:
            return fallback
    return total

def summarize_sca(result: Mapping[str, Any]) -> SeveritySummary:
    """Count Trivy vulnerabilities, falling back to the summary breakdown."""
    inner = result.get("result") if isinstance(result.get("result"), Mapping) else result
    scan_result = inner.get("scan_result") if isinstance(inner, Mapping) else None

    if isinstance(scan_result, Mapping) and isinstance(scan_result.get("results"), list):
        severities = [
            map_severity(vuln.get("severity"))
            for target in scan_result["results"] if isinstance(target, Mapping)
            for vuln in target.get("vulnerabilities") or [] if isinstance(vuln, Mapping)
        ]
        return _count(severities)

    if isinstance(result.get("vulnerabilities"), list):
        return _count(map_severity(v.get("severity")) for v in result["vulnerabilities"] if isinstance(v, Mapping))

    fallback = _summary_block((result.get("summary") or {}).get("severity_breakdown"))
    return fallback or SeveritySummary()

def summarize(envelope: ScanResultEnvelope) -> SeveritySummary:
    if envelope.category == ScanCategory.SAST:
        return summarize_sast(envelope.result or {})
    return summarize_sca(envelope.result or {})

def evaluate(
    category: ScanCategory,
    stage: str,
    scan_result: Optional[ScanResultEnvelope],
) -> GateDecision:
    """Gate decision for a single artifact."""
    if scan_result is None or not scan_result.has_result:
        return GateDecision.warn(category, stage, WarningType.NO_ANALYSIS)

    summary = summarize(scan_result)
    if summary.critical > 0:
        return GateDecision.warn(category, stage, WarningType.CRITICAL_FOUND, summary)
    return GateDecision.clear(category, stage, summary)

def evaluate_images(
    stage: str,
    results: Dict[str, Optional[ScanResultEnvelope]],
) -> GateDecision:
    """
    Gate decision for a deploy of several images.

    Any unanalyzed image makes the whole deploy `no_analysis`; critical
    counts are still summed across the analyzed images that have them.
    """
    unanalyzed: List[str] = []
    flagged = SeveritySummary()

    for image, envelope in results.items():
        decision = evaluate(ScanCategory.SCA, stage, envelope)
        if decision.warning_type == WarningType.NO_ANALYSIS:
            unanalyzed.append(image)
        elif decision.warning_type == WarningType.CRITICAL_FOUND:
            flagged = flagged + decision.summary

    if unanalyzed:
        return GateDecision.warn(ScanCategory.SCA, stage, WarningType.NO_ANALYSIS, flagged, unanalyzed)
    if flagged.critical > 0:
        return GateDecision.warn(ScanCategory.SCA, stage, WarningType.CRITICAL_FOUND, flagged)
    return GateDecision.clear(ScanCategory.SCA, stage)
