import os
import sys

# Add project root to sys.path so 'sqlrecord' and 'tests' import without installation.
project_root_path = os.path.abspath(os.path.dirname(__file__))
if project_root_path not in sys.path:
    sys.path.insert(0, project_root_path)
