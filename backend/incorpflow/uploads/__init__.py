"""Upload area API"""
