"""Test suite for the PacketFlow packet workflow engine.

This package contains tests for:
- Form validation and completion
- Field mapping, autofill and cross-form consistency
- Packet requirements and packet validation
- Workflow state machine navigation and phases
- Event system (emission, serialization)
- Integration scenarios (initiating, response and resumed packets)
"""
