"""Run the citprep CLI with `python -m citprep`"""
from citprep.cli import main

main()
