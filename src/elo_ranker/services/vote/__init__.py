from .coordinator import VoteCoordinator, VoteResult, VoteState, validate_vote

__all__ = ["VoteCoordinator", "VoteResult", "VoteState", "validate_vote"]
