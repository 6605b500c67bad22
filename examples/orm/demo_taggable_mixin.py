"""标签 Mixin 使用示例

演示 TaggableMixin / TaggerMixin 的各种使用场景：
1. 按上下文读写标签列表
2. 按标签查询（默认 / match_any / exclude / match_all）
3. 操作者打标签
4. 标签统计与清理
"""

import sys
from pathlib import Path

# 添加项目根目录到 path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ytag.config import configure_tagging
from ytag.log import setup_logger
from ytag.orm import (
    Base,
    CoreModel,
    AbstractTag,
    AbstractTagging,
    TaggableMixin,
    TaggerMixin,
    TagValidationError,
    db_session_scope,
    init_database,
)


# ==================== 模型定义 ====================

class Tag(CoreModel, AbstractTag):
    """标签"""
    __tablename__ = "demo_tag"


class Tagging(CoreModel, AbstractTagging):
    """标签关联"""
    __tablename__ = "demo_tagging"
    __tag_model__ = Tag


class Photo(CoreModel, TaggableMixin):
    """照片 - 两个上下文"""
    __tablename__ = "demo_photo"
    __tag_model__ = Tag
    __tag_types__ = ("tags", "locations")

    title: Mapped[str] = mapped_column(String(100), comment="标题")


class Member(CoreModel, TaggerMixin):
    """会员 - 可以给照片打标签"""
    __tablename__ = "demo_member"
    __tagging_model__ = Tagging

    name: Mapped[str] = mapped_column(String(50), comment="名称")


# ==================== 示例 ====================

def demo_tag_lists():
    """示例 1: 按上下文读写标签列表"""
    print("\n" + "=" * 60)
    print("示例 1: 按上下文读写标签列表")
    print("=" * 60)

    with db_session_scope():
        sunset = Photo(title="Sunset")
        sunset.set_tag_list_on("tags", 'sunset, beach, "red, orange"')
        sunset.tag_list_on("locations").append("Hawaii")
        sunset.save()

        forest = Photo(title="Forest")
        forest.set_tag_list_on("tags", ["green", "Beach"])
        forest.save()

    with db_session_scope():
        sunset = Photo.query.filter_by(title="Sunset").one()
        print(f"  tags:      {sunset.tag_list_on('tags')}")
        print(f"  locations: {sunset.tag_list_on('locations')}")

        # 只删除多余的、只创建缺少的
        sunset.tag_list_on("tags").remove("beach")
        sunset.tag_list_on("tags").add("ocean")
        sunset.save()
        print(f"  修改后:    {sunset.tag_list_on('tags')}")
        print(f"  标签总数:  {Tag.query.count()}（Beach 与 beach 为同一标签）")


def demo_tagged_with():
    """示例 2: 按标签查询"""
    print("\n" + "=" * 60)
    print("示例 2: 按标签查询")
    print("=" * 60)

    with db_session_scope():
        def titles(query):
            return [photo.title for photo in query.order_by(Photo.id).all()]

        print(f"  同时带有 sunset, ocean:  {titles(Photo.tagged_with('sunset, ocean'))}")
        print(f"  带有任一 green, sunset:  {titles(Photo.tagged_with('green, sunset', match_any=True))}")
        print(f"  不带 green:              {titles(Photo.tagged_with('green', exclude=True))}")
        print(f"  恰好 green, beach:       {titles(Photo.tagged_with('green, beach', match_all=True))}")
        print(f"  locations 中的 hawaii:   {titles(Photo.tagged_with('hawaii', on='locations'))}")
        print(f"  未知标签:                {titles(Photo.tagged_with('sunset, unknown'))}")


def demo_tagger():
    """示例 3: 操作者打标签"""
    print("\n" + "=" * 60)
    print("示例 3: 操作者打标签")
    print("=" * 60)

    with db_session_scope() as session:
        alice = Member(name="Alice").save()
        session.flush()
        forest = Photo.query.filter_by(title="Forest").one()

        alice.tag(forest, with_="favorite, hiking", on="tags")

        print(f"  自身标签:   {forest.tag_list_on('tags')}")
        print(f"  全部标签:   {forest.all_tags_list_on('tags')}")
        print(f"  Alice 的:   {[tag.name for tag in forest.owner_tags_on(alice, 'tags')]}")
        print(f"  Alice 用过: {[tag.name for tag in alice.owned_tags()]}")


def demo_counts_and_errors():
    """示例 4: 标签统计、清理与错误处理"""
    print("\n" + "=" * 60)
    print("示例 4: 标签统计、清理与错误处理")
    print("=" * 60)

    with db_session_scope():
        for tag, count in Photo.tag_counts_on("tags"):
            print(f"  {tag.name}: {count}")

    with db_session_scope():
        photo = Photo.query.filter_by(title="Forest").one()
        photo.set_tag_list_on("tags", ["ok", "x" * 300])
        try:
            photo.save(commit=True)
        except TagValidationError as e:
            print(f"  [Expected] {type(e).__name__}: 标签名称长度 {len(e.name)}")

    configure_tagging(remove_unused_tags=True)
    with db_session_scope():
        photo = Photo.query.filter_by(title="Sunset").one()
        photo.set_tag_list_on("tags", "sunset")
        photo.save()
    with db_session_scope():
        print(f"  清理后的标签: {sorted(tag.name for tag in Tag.query.all())}")


def main():
    """主函数"""
    print("=" * 60)
    print("TaggableMixin Demo")
    print("=" * 60)

    setup_logger("ytag", level="INFO")

    # 初始化数据库（内存数据库）
    engine, session_scope = init_database("sqlite:///:memory:", echo=False)

    # 创建所有表
    Base.metadata.create_all(engine)

    try:
        demo_tag_lists()
        demo_tagged_with()
        demo_tagger()
        demo_counts_and_errors()

        print("\n" + "=" * 60)
        print("Demo completed!")
        print("=" * 60)

    except Exception as e:
        print(f"\n[Error] {e}")
        raise


if __name__ == "__main__":
    main()
