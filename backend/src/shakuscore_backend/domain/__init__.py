"""
领域层：乐谱模型、音高对照表、三种格式编解码与修饰符解析。
"""
