"""SchemaWarp - infer a relational schema from CSV and Markdown exports"""
__version__ = '1.0.0'
