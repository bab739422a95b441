"""Routing — the path cursor, matchers, and the dispatch tree.

Route blocks walk the tree at request time; hash and named-route tables
are compiled into read-only lookups when the app freezes.
"""
