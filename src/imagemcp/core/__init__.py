"""Core pipelines: configuration, input loading, upstream calls and batching."""
