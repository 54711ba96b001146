from interface_agent.run import run_map, run_scan

__all__ = ["run_map", "run_scan"]
