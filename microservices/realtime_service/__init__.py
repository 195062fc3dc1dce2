"""
Realtime Service

Change feed fan-out for collaboration views:
- One bus subscription per table pattern, multiplexed onto
  per-campaign, per-brand and per-creator channels
- Subscription handles with a replaceable handler slot
- Re-query projections (negotiation queue, invitation lists, board notices)

Port: 8264
"""

__version__ = "1.0.0"
__service__ = "realtime_service"
