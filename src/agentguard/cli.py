#!/usr/bin/env python3
"""
agentguard CLI: assess registered agent identities from a registry fixture.

Commands:
    verify  - Probe an agent's declared endpoints
    audit   - Security audit (scores + findings)
    score   - Reputation score with breakdown
    scan    - Batch audit of the most recent registrations

Identities are read from a JSON registry fixture (see agentguard.registry),
given with --registry or AGENTGUARD_REGISTRY.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Optional

# Unrecognized values fall back to "❓"
STATUS_ICONS = {"healthy": "🟢", "degraded": "🟡", "offline": "🔴", "no-endpoints": "⚪"}
RISK_ICONS = {"LOW": "🟢", "MEDIUM": "🟡", "HIGH": "🔴"}
TIER_ICONS = {"Platinum": "🏆", "Gold": "🥇", "Silver": "🥈", "Bronze": "🥉", "Unrated": "⚪"}


def _output(data: dict, args: argparse.Namespace, human_fn=None):
    """Output data as JSON or pretty-printed."""
    if getattr(args, 'json', False):
        print(json.dumps(data, indent=2, default=str))
    elif human_fn:
        human_fn(data)
    else:
        print(json.dumps(data, indent=2, default=str))


def _engine(args: argparse.Namespace):
    from agentguard.config import EngineConfig
    from agentguard.engine import AssessmentEngine
    from agentguard.protocols import DeclaredProtocolInference
    from agentguard.registry import StaticRegistry
    from agentguard.threat_intel import HostThreatIntel, StaticThreatIntel

    registry_path = args.registry or os.environ.get("AGENTGUARD_REGISTRY")
    if not registry_path:
        raise ValueError("No registry fixture given (use --registry or AGENTGUARD_REGISTRY)")

    intel_path = args.threat_intel or os.environ.get("AGENTGUARD_THREAT_INTEL")
    intel_cls = HostThreatIntel if args.host_match else StaticThreatIntel
    return AssessmentEngine(
        config=EngineConfig.from_env(probe_timeout_ms=args.timeout_ms),
        threat_intel=intel_cls.from_file(intel_path) if intel_path else intel_cls(),
        registry=StaticRegistry.from_file(registry_path),
        inference=DeclaredProtocolInference() if args.declared_protocol else None,
    )


# ─── Commands ──────────────────────────────────────────────────────

def cmd_verify(args):
    """Probe an agent's declared endpoints."""
    engine = _engine(args)

    async def run():
        record = await engine.resolve(args.agent_id)
        return await engine.verify_identity(record)

    result = asyncio.run(run()).to_dict()

    def human(d):
        icon = STATUS_ICONS.get(d['status'], "❓")
        print(f"{icon} Agent #{d['agent_id']}: {d['name']} ({d['chain']})")
        print(f"   Owner:  {d['owner']}")
        print(f"   Status: {d['status'].upper()} ({d['score']}/100)")
        if not d['endpoints']:
            print("   No service endpoints declared.")
        for ep in d['endpoints']:
            mark = "✅" if ep['reachable'] else "❌"
            outcome = f"{ep['latency_ms']}ms" if ep['reachable'] else (ep['error'] or f"HTTP {ep['status']}")
            print(f"   {mark} [{ep['protocol']}] {ep['service_name']}: {outcome}")
            print(f"      {ep['url']}")

    _output(result, args, human)
    return result


def cmd_audit(args):
    """Security audit of one agent."""
    engine = _engine(args)

    async def run():
        record = await engine.resolve(args.agent_id)
        return await engine.audit_identity(record)

    result = asyncio.run(run()).to_dict()

    def human(d):
        print(f"🔒 Security Audit: Agent #{d['agent_id']} ({d['chain']})")
        print(f"   Name:       {d['name']}")
        print(f"   Owner:      {d['owner']}")
        print(f"   Risk Level: {RISK_ICONS.get(d['risk_level'], '❓')} {d['risk_level']}")
        for key in ("schema", "endpoint", "content", "reputation", "overall"):
            print(f"   {key.capitalize():<11} {d['scores'][key]}/100")
        if not d['findings']:
            print("   ✅ No issues found.")
        for f in d['findings']:
            icon = "🚨" if f['severity'] == "critical" else "⚠️"
            print(f"   {icon} [{f['category']}] {f['text']}")

    _output(result, args, human)
    return result


def cmd_score(args):
    """Reputation score of one agent."""
    engine = _engine(args)

    async def run():
        record = await engine.resolve(args.agent_id)
        signals = await engine.collect_signals(record)
        return await engine.score_identity(
            record,
            age_days=args.age_days if args.age_days is not None else signals.age_days,
            owner_tx_count=args.tx_count if args.tx_count is not None else signals.tx_count,
            balance_eth=signals.balance_eth,
        )

    result = asyncio.run(run()).to_dict()

    def human(d):
        print(f"📊 Reputation Score: Agent #{d['agent_id']} ({d['chain']})")
        print(f"   Name:  {d['name']}")
        print(f"   Owner: {d['owner']}")
        print(f"   Tier:  {TIER_ICONS.get(d['tier'], '❓')} {d['tier']}")
        for key in ("metadata", "health", "age", "activity", "overall"):
            score = d['scores'][key]
            filled = score // 5
            print(f"   {key.capitalize():<9} {'█' * filled}{'░' * (20 - filled)} {score}/100")
        details = d['details']
        age = details['age_days'] if details['age_days'] is not None else "unknown"
        print(f"   Registered:  {age} days ago")
        print(f"   Owner txns:  {details['owner_tx_count'] if details['owner_tx_count'] is not None else 'unknown'}")
        print(f"   Services:    {details['services_count']}")

    _output(result, args, human)
    return result


def cmd_scan(args):
    """Batch audit of recent registrations."""
    engine = _engine(args)
    report = asyncio.run(engine.scan_recent(args.limit))
    result = report.to_dict(top_n=args.top)

    def human(d):
        print(f"📋 Scan Report: {d['scanned']} agents")
        print(f"   🟢 Healthy: {d['healthy']}  🟡 Warnings: {d['warning']}  🔴 Critical: {d['critical']}")
        flagged = report.flagged()
        if flagged:
            print("   Flagged agents:")
            for a in flagged:
                icon = RISK_ICONS.get(a.risk_level.value, "❓")
                print(f"   {icon} #{a.agent_id} \"{a.name}\": {a.score}/100, "
                      f"{a.critical_findings} critical issue(s)")
        else:
            print("   ✅ All scanned agents passed security checks.")
        print(f"   Top {args.top} by score:")
        for i, a in enumerate(report.top(args.top), 1):
            print(f"   {i}. #{a.agent_id} \"{a.name}\": {a.score}/100")

    _output(result, args, human)
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentguard",
        description="agentguard: agent identity health, security and reputation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Machine-readable JSON output")
    parser.add_argument("--log-level", default=os.environ.get("AGENTGUARD_LOG_LEVEL", "WARNING"),
                        help="Log level for the JSON logs written to stderr")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-r", "--registry", help="Registry fixture JSON file")
    common.add_argument("-t", "--threat-intel", help="Threat intel JSON file")
    common.add_argument("--timeout-ms", type=int, help="Endpoint probe timeout in milliseconds")
    common.add_argument("--declared-protocol", action="store_true",
                        help="Trust a service's own 'protocol' field when present")
    common.add_argument("--host-match", action="store_true",
                        help="Match suspicious domains on the URL host only")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    p = sub.add_parser("verify", parents=[common], help="Probe an agent's declared endpoints")
    p.add_argument("agent_id", type=int, help="Agent ID")

    p = sub.add_parser("audit", parents=[common], help="Security audit of an agent")
    p.add_argument("agent_id", type=int, help="Agent ID")

    p = sub.add_parser("score", parents=[common], help="Reputation score of an agent")
    p.add_argument("agent_id", type=int, help="Agent ID")
    p.add_argument("--age-days", type=float, help="Override registration age in days")
    p.add_argument("--tx-count", type=int, help="Override owner transaction count")

    p = sub.add_parser("scan", parents=[common], help="Batch scan recent registrations")
    p.add_argument("-n", "--limit", type=int, default=50, help="Number of recent agents (default 50)")
    p.add_argument("--top", type=int, default=5, help="Size of the top-by-score list (default 5)")

    return parser


def main(argv: Optional[list[str]] = None) -> Optional[dict]:
    """CLI entry point. Returns result dict for testing."""
    from agentguard.logs import setup_structured_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_structured_logging(args.log_level)

    commands = {
        "verify": cmd_verify,
        "audit": cmd_audit,
        "score": cmd_score,
        "scan": cmd_scan,
    }

    try:
        return commands[args.command](args)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
