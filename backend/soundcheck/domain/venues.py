from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VenueRecord:
    latitude: float
    longitude: float
    city: str
    district: Optional[str] = None


VENUE_DATABASE: dict[str, VenueRecord] = {
    # 台北
    "Legacy Taipei": VenueRecord(25.0443, 121.5597, "台北", "信義區"),
    "Legacy TERA": VenueRecord(25.0443, 121.5597, "台北", "信義區"),
    "Legacy mini @ amba": VenueRecord(25.0443, 121.5597, "台北", "信義區"),
    "Blue Note Taipei": VenueRecord(25.0443, 121.5597, "台北", "信義區"),
    "Riverside Music Live House": VenueRecord(25.0443, 121.5597, "台北", "大安區"),
    "The Wall": VenueRecord(25.0443, 121.5597, "台北", "大安區"),
    "SUB": VenueRecord(25.0443, 121.5597, "台北", "大安區"),
    "迴響音樂藝文展演空間": VenueRecord(25.0443, 121.5597, "台北", "大安區"),
    "Taipei Arena": VenueRecord(25.0330, 121.5654, "台北", "南港區"),
    "國父紀念館": VenueRecord(25.0330, 121.5654, "台北", "信義區"),
    "台北小巨蛋": VenueRecord(25.0330, 121.5654, "台北", "南港區"),
    "台北國際會議中心": VenueRecord(25.0330, 121.5654, "台北", "南港區"),
    "誠品音樂廳": VenueRecord(25.0443, 121.5597, "台北", "信義區"),
    "三創生活園區": VenueRecord(25.0330, 121.5654, "台北", "中正區"),
    "華山1914文創園區": VenueRecord(25.0330, 121.5654, "台北", "中正區"),
    "TICC": VenueRecord(25.0330, 121.5654, "台北", "南港區"),
    # 台中
    "Legacy Taichung": VenueRecord(24.1477, 120.6736, "台中", "西屯區"),
    "台中歌劇院": VenueRecord(24.1477, 120.6736, "台中", "西屯區"),
    "台中爵士音樂節": VenueRecord(24.1477, 120.6736, "台中", "西屯區"),
    # 高雄
    "高雄巨蛋": VenueRecord(22.7149, 120.3051, "高雄", "左營區"),
    "高雄文化中心": VenueRecord(22.6149, 120.3051, "高雄", "苓雅區"),
    # 台南
    "台南文化中心": VenueRecord(22.9903, 120.2111, "台南", "東區"),
    # 新竹
    "新竹竹北演藝廳": VenueRecord(24.8375, 120.9939, "新竹", "竹北市"),
    # 基隆
    "基隆文化中心": VenueRecord(25.1276, 121.7405, "基隆", "中山區"),
    # 花蓮
    "花蓮文化中心": VenueRecord(23.9868, 121.6024, "花蓮", "花蓮市"),
    # 澎湖
    "澎湖文化中心": VenueRecord(23.5691, 119.5933, "澎湖", "馬公市"),
}

# Nicknames and abbreviations -> canonical VENUE_DATABASE key
VENUE_ALIASES: dict[str, str] = {
    "legacy": "Legacy Taipei",
    "小巨蛋": "台北小巨蛋",
    "國父紀念館": "國父紀念館",
    "華山": "華山1914文創園區",
    "誠品": "誠品音樂廳",
    "三創": "三創生活園區",
    "歌劇院": "台中歌劇院",
    "高雄巨蛋": "高雄巨蛋",
}
