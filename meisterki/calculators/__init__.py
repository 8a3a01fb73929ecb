"""
Trade calculators — deterministic line-item derivation.

Pure Python math. Given a validated OfferInput, a trade calculator produces
the room-derived OfferItems for its trade (labor and material per room).
"""
