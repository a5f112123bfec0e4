"""Test package for docchat.

Structure:
    - unit/: Individual function and class tests
    - integration/: HTTP routes and the chat client working together

PDFs are built in memory by the ``make_pdf`` fixture; the upstream
service is replaced by a scriptable fake. Leverages pytest with
pytest-check for soft assertions.
"""
