"""
Test Suite for ApiPosture
=========================

Test Structure:
    - test_models.py: data model helpers
    - test_authorization.py: vocabulary, extractor and merger
    - test_classification.py: security classifier
    - test_rules.py: AP001-AP008 and the rule engine
    - test_detectors.py: Gin, Echo, Chi, Fiber and net/http detectors
    - test_analyzer.py: end-to-end project scanning
    - test_config.py: configuration loading and suppressions
    - test_output.py: report formatters
    - test_cli.py: command line interface
"""
