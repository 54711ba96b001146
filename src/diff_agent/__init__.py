from diff_agent.run import run_diff

__all__ = ["run_diff"]
