"""HTTP routers for the meals and LLM endpoints."""
