"""Routers package initialization"""
