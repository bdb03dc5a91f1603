"""One-time-per-product telemetry reporting.

This package provides:
- InstanceIdentity: Resolves the stable per-host instance ID
- ReportStateStore: File ledger of the instance ID and reported products
- ReportBuilder: Assembles the outbound TelemetryReport
- ReportTransport: Single-attempt HTTP delivery
- Orchestrator: Runs check, build, send and mark in order
"""
