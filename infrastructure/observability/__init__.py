from .tracing import add_span_attributes, setup_tracing, tracer


__all__ = ["tracer", "setup_tracing", "add_span_attributes"]
