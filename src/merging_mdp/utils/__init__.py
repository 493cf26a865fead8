from merging_mdp.utils.logging import setup_logging

__all__ = ["setup_logging"]
