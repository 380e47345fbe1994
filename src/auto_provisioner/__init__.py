"""Auto-Provisioner: provision a Linux server and deploy an application into it."""

__version__ = "0.1.0"
