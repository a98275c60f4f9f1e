"""Native messaging host toolkit.

native_messaging.host implements the framed stdio protocol and the
event loop a host runs; native_messaging.install writes the
manifests browsers use to find the host.
"""
