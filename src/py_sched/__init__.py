"""py-sched: a discrete-time process scheduling simulator.

The package is organised like a tiny kernel: processes and their queues
live in ``py_sched.process``, lockable resources and the acquisition
protocols that guard them live in ``py_sched.sync``, and the
``Simulation`` driver ties everything together one tick at a time.
"""

__version__ = "0.1.0"
