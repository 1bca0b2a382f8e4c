"""
ShakuScore 后端根包。

定位：
- 尺八（琴古流，D 管 1.8 尺）谱面的核心逻辑：三种谱面格式（原生 JSON / MusicXML / ABC 文本谱）
  与统一乐谱模型（ScoreModel）之间的互转，以及竖排分列布局（含修饰符挂载）。
- 绘制后端（SVG）、持久化与鉴权不在本包内；本包只产出纯数据。
"""
