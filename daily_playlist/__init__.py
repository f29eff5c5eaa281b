# Daily playlist curator - 每日视频播放列表策展
# 解析频道、双通道抓取、时效与格式过滤、话题聚类
