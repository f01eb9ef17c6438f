"""Resources app package.

Registry of bookable resources: suppliers (vendors booked by start time
plus a slot duration) and venues (booked by whole days). Rows mirror the
catalog service; this app only keeps what scheduling needs, i.e. the kind,
the owner, capacity and the default slot duration.
"""
