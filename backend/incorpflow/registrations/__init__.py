"""Registrations API - router, request schemas and the registration service"""
