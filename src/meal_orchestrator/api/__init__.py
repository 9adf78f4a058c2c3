"""HTTP API for meal-orchestrator."""
