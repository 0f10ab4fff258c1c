"""JSON web API for py-sched.

This package provides a Flask application that runs simulations over
HTTP.  It is an **optional** extra, installed with::

    pip install py-sched[web]

The ``create_app`` factory in ``app.py`` serves two endpoints:

- ``GET /api/policies`` — registered scheduling policies.
- ``POST /api/simulate`` — run a workload and return the report.
"""
