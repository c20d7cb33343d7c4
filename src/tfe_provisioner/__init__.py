"""Terraform-style provisioning of registry-module test variables."""

__version__ = "0.1.0"
