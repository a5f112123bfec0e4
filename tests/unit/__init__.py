"""Unit tests for individual components in isolation.

Coverage:
    - api/: Input validation
    - client/: Frame parser, state reducer, cancellation coordinator
    - relay/: Frame encoding and forwarding
    - sessions/: Session registry
    - parsing/: PDF text extraction
    - agent/: Agent configuration and Agno event translation

Uses mocks for Agno and the upstream service. Leverages pytest-check for
multiple assertions per test.
"""
