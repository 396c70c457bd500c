"""
Python client for the practice API.

The package mirrors the three layers of the browser portal: ``services``
talk HTTP, ``slices`` and ``store`` hold state, and ``views`` plus
``normalizers`` shape that state for display.
"""
