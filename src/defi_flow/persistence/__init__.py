"""Flow document persistence."""

from .flow_file import DEFAULT_FLOW_NAME, dump_flow, load_flow, parse_flow, save_flow

__all__ = ["DEFAULT_FLOW_NAME", "dump_flow", "load_flow", "parse_flow", "save_flow"]
