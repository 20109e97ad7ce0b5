import os

# Figures are drawn off-screen during tests
os.environ.setdefault("MPLBACKEND", "Agg")
