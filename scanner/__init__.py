"""
目录遍历、忽略规则与内容哈希
"""
