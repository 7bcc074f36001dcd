"""Collaborator adapters consumed by the limiter.

The limiter depends only on the abstract persistence store and timestamp
provider, so storage backends and clocks can be swapped without touching the
admission algorithm.
"""
