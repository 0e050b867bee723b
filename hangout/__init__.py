"""Hangout core: social graph, room membership, presence and chat fan-out."""
