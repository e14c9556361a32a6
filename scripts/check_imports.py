import sys
import os

print('Python', sys.version)
# Ensure the project root is on sys.path so 'import stilltrue.*' works without an install.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)
print('Added to sys.path:', repo_root)
try:
    from stilltrue.main import app
    from stilltrue.services.llm_adapter import get_llm_adapter
    from stilltrue.services.fact_pipeline import PipelineConfig
    print('Imports OK;', len(app.routes), 'routes')
    print('LLM adapter:', get_llm_adapter().name)
    print('Pipeline config:', PipelineConfig.from_env())
except Exception as e:
    print('Import error', e)
    raise
