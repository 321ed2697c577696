"""Unit tests for the security self-audit."""

from memory_bank_server.core.security import SecurityGate, run_self_audit
from memory_bank_server.core.security.self_audit import Severity
from memory_bank_server.models.config import PolicyConfig

BASE = "/srv/workspace/memory-bank"


class TestSelfAudit:
    """Test policy scoring."""

    def test_default_policy_passes(self):
        result = run_self_audit(SecurityGate(PolicyConfig(), BASE))

        assert result.passed
        assert result.score == 100
        assert result.findings == []

    def test_probes_are_not_audited(self):
        gate = SecurityGate(PolicyConfig(), BASE)
        run_self_audit(gate)
        assert len(gate.audit_log) == 0

    def test_weak_policy_loses_points(self):
        policy = PolicyConfig(
            sanitization_enabled=False,
            allowed_path_extensions=frozenset(),
            max_content_size=11 * 1024 * 1024,
        )
        result = run_self_audit(SecurityGate(policy, BASE))

        assert {f.severity for f in result.findings} == {Severity.MEDIUM}
        assert result.score == 100 - 3 * 8
        assert result.passed is False

    def test_markdown_report(self):
        result = run_self_audit(SecurityGate(PolicyConfig(sanitization_enabled=False), BASE))
        report = result.to_markdown()

        assert report.startswith("# Security Audit Report")
        assert "- **Security Score**: 92/100" in report
        assert "MEDIUM: Content sanitization is disabled" in report
