"""
Test support utilities for catalog-spine tests.

Helpers that don't fit as pytest fixtures but are shared by several test
modules: an in-memory git backend (:mod:`tests._support.fake_git`),
manifest builders (:mod:`tests._support.manifests`) and catalog row
seeding (:mod:`tests._support.entries`).
"""
