"""
Resource collectors for the DS8K exporter.

Available collectors:
- base.py: ResourceCollector interface and shared value helpers
- system_collector.py: System capacity metrics
- pool_collector.py: Extent pool capacity metrics
- volume_collector.py: Volume capacity metrics, walked pool by pool
- performance_collector.py: System IOPS for the last complete minute
- registry.py: Registry of collector kinds and their default state
"""
