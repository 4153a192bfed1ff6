from irxr.daemon import IRXRDaemon


def on_pose(payload: str) -> None:
    print("[PoseListener] pose:", payload)


class PoseListener(IRXRDaemon):
    host = "pose-listener"
    tick_hz = 60.0

    topics = {
        "pose": on_pose,
    }
    publish_topics = ["HeadTransform"]

    def on_connected(self, client):
        print("[PoseListener] registered with", client.server.name, "at", client.server.ip)
        print("[PoseListener] echo ->", client.request_string("Echo", "hello", timeout_s=2.0))

    def on_tick(self, client):
        if client.connected:
            client.publish_string("HeadTransform", "0,1.6,0")

    def on_disconnected(self, client):
        print("[PoseListener] server lost, waiting for the next announcement")


if __name__ == "__main__":
    PoseListener().serve()
