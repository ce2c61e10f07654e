"""
Bordeaux AOC rating adjustment and ranking engine.

Wines carry an aggregated base rating from an external source; admins
may nudge each wine by up to +/-25%. Rankings are computed on the
effective score, per appellation (top 20) or globally (top 100).
"""
