"""Security self-audit: runs known-bad input through the gate and scores the policy."""

import logging
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from memory_bank_server.core.security.gate import SecurityGate

logger = logging.getLogger(__name__)

MALICIOUS_CONTENT = [
    '<script>alert("xss")</script>',
    "<SCRIPT SRC=//evil.example/x.js>",
    'javascript:alert("xss")',
    "[click](vbscript:msgbox)",
    '<img src="x" onerror="alert(1)">',
    '<div style="width: expression(alert(1))">',
    "data:text/html;base64,PHNjcmlwdD4=",
]

TRAVERSAL_PATHS = [
    "../../../etc/passwd",
    "..\\..\\..\\windows\\system32\\config\\sam",
    "/etc/shadow",
    "notes/../../outside.md",
    "progress.md\0.txt",
]

SEVERITY_PENALTY = {"critical": 25, "high": 15, "medium": 8, "low": 3}

GENERAL_RECOMMENDATIONS = [
    "Keep the server bound to localhost",
    "Escape document content in any UI that renders it as HTML",
]


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SecurityFinding(BaseModel):
    severity: Severity
    category: str
    description: str
    details: str
    remediation: str


class SecurityAuditResult(BaseModel):
    passed: bool
    score: int = Field(ge=0, le=100)
    findings: list[SecurityFinding] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.now)

    def to_markdown(self) -> str:
        """Render the result as a markdown report."""
        counts = {
            severity: sum(1 for f in self.findings if f.severity is severity)
            for severity in Severity
        }
        lines = [
            "# Security Audit Report",
            "",
            "## Overall Assessment",
            f"- **Security Score**: {self.score}/100",
            f"- **Status**: {'PASSED' if self.passed else 'FAILED'}",
            f"- **Total Findings**: {len(self.findings)}",
            "",
            "## Findings by Severity",
        ]
        lines += [f"- **{s.value.title()}**: {counts[s]}" for s in reversed(Severity)]
        lines += ["", "## Detailed Findings"]
        for finding in self.findings:
            lines += [
                "",
                f"### {finding.severity.value.upper()}: {finding.description}",
                f"- **Category**: {finding.category}",
                f"- **Details**: {finding.details}",
                f"- **Remediation**: {finding.remediation}",
            ]
        lines += ["", "## Recommendations"]
        lines += [f"- {rec}" for rec in self.recommendations]
        lines += ["", "## Generated", self.generated_at.isoformat(), ""]
        return "\n".join(lines)


def run_self_audit(gate: SecurityGate) -> SecurityAuditResult:
    """Probe ``gate`` with malicious content and traversal paths.

    Probes go through the validator directly so they never show up in the
    audit log.
    """
    findings: list[SecurityFinding] = []
    findings += _audit_content_validation(gate)
    findings += _audit_path_validation(gate)
    findings += _audit_configuration(gate)

    score = max(0, 100 - sum(SEVERITY_PENALTY[f.severity.value] for f in findings))
    passed = score >= 80 and not any(f.severity is Severity.CRITICAL for f in findings)

    recommendations = list(dict.fromkeys(f.remediation for f in findings))
    recommendations += GENERAL_RECOMMENDATIONS

    logger.info(f"Security self-audit completed. Score: {score}/100, Findings: {len(findings)}")
    return SecurityAuditResult(
        passed=passed, score=score, findings=findings, recommendations=recommendations
    )


def _audit_content_validation(gate: SecurityGate) -> list[SecurityFinding]:
    findings = []
    for sample in MALICIOUS_CONTENT:
        if gate.validate_content(sample).is_valid:
            findings.append(
                SecurityFinding(
                    severity=Severity.HIGH,
                    category="input_validation",
                    description="Malicious input not rejected",
                    details=f"Input {sample[:50]!r} was accepted",
                    remediation="Strengthen the content deny-list",
                )
            )

    oversized = "a" * (gate.policy.max_content_size + 1)
    if gate.validate_content(oversized).is_valid:
        findings.append(
            SecurityFinding(
                severity=Severity.HIGH,
                category="input_validation",
                description="Oversized content accepted",
                details=f"Content above {gate.policy.max_content_size} bytes was accepted",
                remediation="Enforce the maximum content size",
            )
        )

    if not gate.policy.sanitization_enabled:
        findings.append(
            SecurityFinding(
                severity=Severity.MEDIUM,
                category="input_validation",
                description="Content sanitization is disabled",
                details="Sanitization strips known script constructs before persisting",
                remediation="Enable content sanitization in the policy",
            )
        )
    return findings


def _audit_path_validation(gate: SecurityGate) -> list[SecurityFinding]:
    findings = []
    for path in TRAVERSAL_PATHS:
        if gate.is_allowed("read", path):
            findings.append(
                SecurityFinding(
                    severity=Severity.CRITICAL,
                    category="access_control",
                    description="Directory traversal not rejected",
                    details=f"Path {path!r} was accepted",
                    remediation="Fix path normalization and base path checks",
                )
            )

    if not gate.policy.allowed_path_extensions:
        findings.append(
            SecurityFinding(
                severity=Severity.MEDIUM,
                category="access_control",
                description="No file extension restrictions",
                details="Any file extension is accepted",
                remediation="Restrict the policy to specific safe extensions",
            )
        )
    return findings


def _audit_configuration(gate: SecurityGate) -> list[SecurityFinding]:
    findings = []
    if gate.policy.max_content_size > 10 * 1024 * 1024:
        findings.append(
            SecurityFinding(
                severity=Severity.MEDIUM,
                category="configuration",
                description="Content size limit too high",
                details=f"Maximum content size is {gate.policy.max_content_size} bytes",
                remediation="Lower the maximum content size",
            )
        )
    return findings


__all__ = [
    "Severity",
    "SecurityFinding",
    "SecurityAuditResult",
    "run_self_audit",
]
