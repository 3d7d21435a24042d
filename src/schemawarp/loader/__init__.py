"""Source file loading"""
from .csv_reader import read_csv_table
