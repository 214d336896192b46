"""
Pytest configuration.

Having a conftest here puts this directory on sys.path so suites in
subdirectories can import the shared document builders in hqmf_fixtures.
"""
