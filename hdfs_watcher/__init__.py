"""HDFS Watcher - announces new files in HDFS or a local directory exactly once."""
