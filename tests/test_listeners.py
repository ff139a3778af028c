"""
事件监听测试
============

测试 eniwise_modbus.core.listeners 中的订阅者接口和注册表。
"""

from eniwise_modbus.core.listeners import ListenerRegistry, ModbusEventListener

from .helpers import RecordingListener


class Broken:
    def on_received(self, packet):
        raise RuntimeError("on_received失败")

    def on_closed(self):
        raise RuntimeError("on_closed失败")


class TestListenerRegistry:
    """测试订阅者注册表"""

    def test_protocol(self):
        """实现了两个回调的对象即为订阅者"""
        assert isinstance(RecordingListener(), ModbusEventListener)
        assert not isinstance(object(), ModbusEventListener)

    def test_subscribe_and_notify(self):
        registry = ListenerRegistry()
        first, second = RecordingListener(), RecordingListener()
        registry.subscribe(first)
        registry.subscribe(second)

        registry.notify_received(b"\x05\x03")
        registry.notify_closed()

        assert len(registry) == 2
        assert first.received == [b"\x05\x03"]
        assert second.received == [b"\x05\x03"]
        assert first.closed == 1
        assert second.closed == 1

    def test_unsubscribe(self):
        registry = ListenerRegistry()
        listener = RecordingListener()
        registry.subscribe(listener)
        registry.unsubscribe(listener)

        registry.notify_received(b"\x01")

        assert len(registry) == 0
        assert listener.received == []

    def test_unsubscribe_unknown(self):
        """移除未订阅的对象不报错"""
        registry = ListenerRegistry()
        registry.unsubscribe(RecordingListener())
        assert len(registry) == 0

    def test_exception_isolated(self):
        """单个订阅者的异常不影响后续订阅者"""
        registry = ListenerRegistry()
        recorder = RecordingListener()
        registry.subscribe(Broken())
        registry.subscribe(recorder)

        registry.notify_received(b"\x01")
        registry.notify_closed()

        assert recorder.received == [b"\x01"]
        assert recorder.closed == 1

    def test_unsubscribe_during_notify(self):
        """回调中修改订阅列表不影响本轮通知"""
        registry = ListenerRegistry()
        recorder = RecordingListener()

        class SelfRemoving(RecordingListener):
            def on_received(self, packet):
                registry.unsubscribe(self)

        registry.subscribe(SelfRemoving())
        registry.subscribe(recorder)
        registry.notify_received(b"\x01")

        assert recorder.received == [b"\x01"]
        assert len(registry) == 1
