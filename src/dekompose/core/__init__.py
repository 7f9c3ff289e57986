"""Conversion engine — nodes, tokens, rules, workloads, env, volumes."""
