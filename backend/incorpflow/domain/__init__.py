"""Domain layer: registration aggregate, workflow rules, document slots and errors"""
