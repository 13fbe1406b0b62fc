"""
存储层：快照数据模型、快照数据库与哈希缓存
"""
