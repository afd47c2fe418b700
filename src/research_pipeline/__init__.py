"""Asynchronous research pipeline: accept requests, queue them, research them."""
