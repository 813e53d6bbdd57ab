"""Notification dispatch service.

The ``app`` package is a regular package so it is never confused with a
namespace package of the same name installed in site-packages.
"""
