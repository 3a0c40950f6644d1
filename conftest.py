import sys
import os

# Calculate the absolute path to the project root directory (where this conftest.py is)
project_root = os.path.dirname(os.path.abspath(__file__))
# Calculate the absolute path to the 'src' directory
src_path = os.path.join(project_root, "src")

# Make 'snipvault' importable without an editable install
if src_path not in sys.path:
    sys.path.insert(0, src_path)
