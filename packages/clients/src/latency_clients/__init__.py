"""NATS latency demo clients.

- latency-requestor: issues request/reply calls back to back and exports
  round-trip latency as Prometheus metrics
- latency-replier: answers requests through a queue group, optionally
  after an artificial delay
"""

__version__ = "0.1.0"
