"""
Service layer for the Card Query backend.

Contains the orchestration that:
- Wraps the Gemini streaming client behind a small provider interface
- Filters and matches cards deterministically (criteria filter, fallback matcher)
- Runs the two interchangeable query strategies
- Formats everything into a single Server-Sent Events stream

Services act as the glue between routes (HTTP layer) and agents/dataset.
Import from the submodules directly; the agents package imports the
deterministic matchers from here, so this package re-exports nothing.
"""
