"""Rota Ágil: customer book and visit-order planning for door-to-door sales."""
