"""
microagent - Conformance validator for the Micro Agent folder convention.

A Micro Agent directory packages an agent's identity (AGENT.md), its tool
scripts (tools/), read-only reference material (context/), agent-written
output (workspace/) and an environment template (.env.example).

Usage:
    from microagent.validator.runner import validate_agent_dir
    from microagent.report.emitter import emit_report

    result = validate_agent_dir(Path("agents/youtube"), level="minimum")
    print(emit_report(result, level="minimum", fmt="text"))
"""

__version__ = "1.0.0"
