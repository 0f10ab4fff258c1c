"""Fatal fault raised when the scheduling core is misused.

Some conditions are normal control flow (an idle tick, a blocked
acquire) and are encoded in return values.  Others can only happen when
the caller has a bug: releasing a resource you do not own, linking a
process into two queues at once.  Those raise ``ProtocolViolation`` and
abort the simulation, there is nothing sensible to recover.
"""


class ProtocolViolation(RuntimeError):
    """Raise when the acquire/release protocol or a queue invariant is broken."""
