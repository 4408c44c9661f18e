"""
Data models: dynamic values, the MiniApp DSL, legacy design trees and
persistence entities.
"""
