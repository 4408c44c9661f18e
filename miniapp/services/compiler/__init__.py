"""
Design tree compilers: AppDesign -> MiniApp Spec and AppDesign -> HTML markup.
"""
