"""Runtime support: concurrency primitives and observability."""
