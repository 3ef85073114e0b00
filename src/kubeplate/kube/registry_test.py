from kubeplate.kube.registry import DEFAULT_TYPES, TypeRegistry
from kubeplate.manifests import GroupVersionKind


def test__TypeRegistry__default() -> None:
    registry = TypeRegistry.default()

    assert len(registry) == len(DEFAULT_TYPES)
    assert "Deployment" in registry
    assert "Widget" not in registry
    assert registry.kinds_for("Deployment") == [GroupVersionKind("apps", "v1", "Deployment")]
    assert registry.kinds_for("ConfigMap") == [GroupVersionKind("", "v1", "ConfigMap")]
    assert registry.kinds_for("Widget") == []


def test__TypeRegistry__with_types_returns_a_new_registry() -> None:
    registry = TypeRegistry.default()
    widget = GroupVersionKind("example.com", "v1", "Widget")

    extended = registry.with_types([widget])

    assert extended.kinds_for("Widget") == [widget]
    assert "Widget" not in registry
    assert len(extended) == len(registry) + 1


def test__TypeRegistry__kinds_for_keeps_registration_order_and_ignores_duplicates() -> None:
    registry = TypeRegistry.from_pairs(
        [("example.com/v1", "Widget"), ("example.com/v2", "Widget"), ("example.com/v1", "Widget")]
    )

    assert registry.kinds_for("Widget") == [
        GroupVersionKind("example.com", "v1", "Widget"),
        GroupVersionKind("example.com", "v2", "Widget"),
    ]
    assert len(registry) == 2
